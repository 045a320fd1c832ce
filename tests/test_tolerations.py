import pytest

from storkit.tolerations import (
    WELL_KNOWN_TAINTS,
    taint_is_well_known,
    toleration_tolerates_taint,
    yaml_to_tolerations,
)


def test_taint_is_well_known():
    assert all(taint_is_well_known({"key": key}) for key in WELL_KNOWN_TAINTS)
    assert not taint_is_well_known({"key": "example.com/custom"})
    assert not taint_is_well_known({})


def test_exists_operator_tolerates_matching_key():
    taint = {"key": "dedicated", "value": "storage", "effect": "NoSchedule"}
    assert toleration_tolerates_taint({"key": "dedicated", "operator": "Exists"}, taint)
    assert toleration_tolerates_taint({"operator": "Exists"}, taint)
    assert not toleration_tolerates_taint({"key": "other", "operator": "Exists"}, taint)


def test_equal_operator_compares_values():
    taint = {"key": "dedicated", "value": "storage", "effect": "NoSchedule"}
    assert toleration_tolerates_taint({"key": "dedicated", "value": "storage"}, taint)
    assert toleration_tolerates_taint(
        {"key": "dedicated", "operator": "Equal", "value": "storage"}, taint
    )
    assert not toleration_tolerates_taint(
        {"key": "dedicated", "operator": "Equal", "value": "compute"}, taint
    )


def test_effect_mismatch_and_unknown_operator():
    taint = {"key": "dedicated", "value": "storage", "effect": "NoSchedule"}
    assert not toleration_tolerates_taint(
        {"key": "dedicated", "operator": "Exists", "effect": "NoExecute"}, taint
    )
    assert not toleration_tolerates_taint({"key": "dedicated", "operator": "Bogus"}, taint)


def test_yaml_to_tolerations_round_trip():
    raw = (
        "- key: dedicated\n"
        "  operator: Equal\n"
        "  value: storage\n"
        "  effect: NoSchedule\n"
        "- key: node.kubernetes.io/unreachable\n"
        "  operator: Exists\n"
        "  effect: NoExecute\n"
        "  tolerationSeconds: 6000\n"
    )
    assert yaml_to_tolerations(raw) == [
        {"key": "dedicated", "operator": "Equal", "value": "storage", "effect": "NoSchedule"},
        {
            "key": "node.kubernetes.io/unreachable",
            "operator": "Exists",
            "effect": "NoExecute",
            "tolerationSeconds": 6000,
        },
    ]


def test_yaml_to_tolerations_empty():
    assert yaml_to_tolerations("") == []


@pytest.mark.parametrize(
    "raw",
    [
        "key: dedicated\noperator: Exists\n",
        "- just-a-string\n",
        "\tinvalid:\n\t  data: x\n",
        "- key: dedicated\n  tolerationSeconds: soon\n",
    ],
)
def test_yaml_to_tolerations_invalid(raw):
    with pytest.raises(ValueError):
        yaml_to_tolerations(raw)