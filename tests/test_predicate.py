import pytest

from storkit.predicate import ConfigMapPredicate, config_map_diff, find_csi_change

SETTINGS = "operator-settings"


def _cm(data, name=SETTINGS, kind="ConfigMap"):
    return {"kind": kind, "metadata": {"name": name}, "data": data}


@pytest.fixture
def predicate():
    return ConfigMapPredicate(SETTINGS)


def test_diff_of_equal_data_is_empty():
    assert config_map_diff({"a": "1"}, {"a": "1"}) == ""


def test_diff_mentions_changed_keys_only():
    diff = config_map_diff({"CSI_LOG_LEVEL": "0", "OTHER": "x"}, {"CSI_LOG_LEVEL": "1", "OTHER": "x"})
    assert '"CSI_LOG_LEVEL"' in diff
    assert "OTHER" not in diff


def test_diff_treats_none_as_empty():
    diff = config_map_diff(None, {"RAW_DEVICE_ENABLE": "true"})
    assert '"RAW_DEVICE_ENABLE"' in diff
    assert config_map_diff(None, {}) == ""


@pytest.mark.parametrize(
    "text",
    ['"RAW_DEVICE_IMAGE": "img"', '"CSI_LOG_LEVEL": "1"', '"KUBELET_ROOT_DIR": "/var"'],
)
def test_find_csi_change_detects_settings(text):
    assert find_csi_change(text) is True


@pytest.mark.parametrize("text", ["", '"LOG_LEVEL": "1"', "CSI_LOG_LEVEL unquoted", '"KUBELET_'])
def test_find_csi_change_ignores_other_text(text):
    assert find_csi_change(text) is False


def test_create_of_settings_map_triggers(predicate):
    assert predicate.create(_cm({})) is True


def test_create_of_other_map_does_not_trigger(predicate):
    assert predicate.create(_cm({}, name="something-else")) is False
    assert predicate.create(_cm({}, kind="Secret")) is False


def test_update_with_csi_change_triggers(predicate):
    assert predicate.update(_cm({"CSI_LOG_LEVEL": "0"}), _cm({"CSI_LOG_LEVEL": "5"})) is True


def test_update_with_added_raw_device_key_triggers(predicate):
    assert predicate.update(_cm({}), _cm({"RAW_DEVICE_ENABLE": "true"})) is True


def test_update_with_unrelated_change_does_not_trigger(predicate):
    assert predicate.update(_cm({"LOG": "a"}), _cm({"LOG": "b"})) is False


def test_update_without_change_does_not_trigger(predicate):
    data = {"CSI_LOG_LEVEL": "1"}
    assert predicate.update(_cm(data), _cm(dict(data))) is False


def test_update_of_other_map_does_not_trigger(predicate):
    old = _cm({"CSI_LOG_LEVEL": "0"}, name="other")
    new = _cm({"CSI_LOG_LEVEL": "1"}, name="other")
    assert predicate.update(old, new) is False


def test_update_of_non_config_map_does_not_trigger(predicate):
    old = _cm({"CSI_LOG_LEVEL": "0"}, kind="Secret")
    new = _cm({"CSI_LOG_LEVEL": "1"}, kind="Secret")
    assert predicate.update(old, new) is False


def test_delete_and_generic_never_trigger(predicate):
    assert predicate.delete(_cm({"CSI_LOG_LEVEL": "1"})) is False
    assert predicate.generic(_cm({"CSI_LOG_LEVEL": "1"})) is False