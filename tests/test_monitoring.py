import json

import pytest

from storkit.client import InMemoryResourceClient
from storkit.errors import ApiError
from storkit.monitoring import (
    create_or_update_prometheus_rule,
    create_or_update_service_monitor,
    get_prometheus_rule,
    get_service_monitor,
)

MONITOR_YAML = """\
apiVersion: monitoring.coreos.com/v1
kind: ServiceMonitor
metadata:
  name: csi-metrics
  namespace: storage
spec:
  endpoints:
    - port: metrics
      interval: 30s
"""


class _FailingClient:
    def get(self, name):
        raise ApiError("server unavailable")

    def create(self, obj):
        raise ApiError("server unavailable")

    def update(self, obj):
        raise ApiError("server unavailable")


def _monitor(spec):
    return {"metadata": {"name": "csi-metrics", "namespace": "storage"}, "spec": spec}


def test_get_service_monitor_from_yaml(tmp_path):
    path = tmp_path / "monitor.yaml"
    path.write_text(MONITOR_YAML)
    monitor = get_service_monitor(str(path))
    assert monitor["kind"] == "ServiceMonitor"
    assert monitor["metadata"]["name"] == "csi-metrics"
    assert monitor["spec"]["endpoints"][0]["port"] == "metrics"


def test_get_prometheus_rule_from_json(tmp_path):
    rule = {
        "kind": "PrometheusRule",
        "metadata": {"name": "alerts"},
        "spec": {"groups": [{"name": "g", "rules": []}]},
    }
    path = tmp_path / "rule.json"
    path.write_text(json.dumps(rule))
    assert get_prometheus_rule(str(path)) == rule


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError, match="could not be fetched"):
        get_service_monitor(str(tmp_path / "absent.yaml"))


def test_invalid_document_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("key: [unclosed\n")
    with pytest.raises(ValueError, match="could not be decoded"):
        get_prometheus_rule(str(path))


def test_non_mapping_document_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        get_service_monitor(str(path))


def test_service_monitor_created_when_missing():
    monitors = InMemoryResourceClient(kind="servicemonitor")
    created = create_or_update_service_monitor(monitors, _monitor({"a": 1}))
    assert created["spec"] == {"a": 1}
    assert monitors.get("csi-metrics")["spec"] == {"a": 1}


def test_service_monitor_update_replaces_spec_only():
    existing = _monitor({"a": 1})
    existing["metadata"]["labels"] = {"team": "storage"}
    monitors = InMemoryResourceClient([existing], kind="servicemonitor")
    updated = create_or_update_service_monitor(monitors, _monitor({"b": 2}))
    assert updated["spec"] == {"b": 2}
    stored = monitors.get("csi-metrics")
    assert stored["spec"] == {"b": 2}
    assert stored["metadata"]["labels"] == {"team": "storage"}


def test_service_monitor_get_failure_is_reported():
    with pytest.raises(ApiError, match="failed to retrieve servicemonitor"):
        create_or_update_service_monitor(_FailingClient(), _monitor({}))


def test_prometheus_rule_created_when_missing():
    rules = InMemoryResourceClient(kind="prometheusrule")
    rule = {"metadata": {"name": "alerts"}, "spec": {"groups": []}}
    created = create_or_update_prometheus_rule(rules, rule)
    assert created["spec"] == {"groups": []}
    assert len(rules) == 1


def test_prometheus_rule_updates_existing_spec():
    old = {"metadata": {"name": "alerts", "labels": {"x": "y"}}, "spec": {"groups": []}}
    rules = InMemoryResourceClient([old], kind="prometheusrule")
    new = {"metadata": {"name": "alerts"}, "spec": {"groups": [{"name": "g"}]}}
    result = create_or_update_prometheus_rule(rules, new)
    assert result["spec"] == {"groups": [{"name": "g"}]}
    stored = rules.get("alerts")
    assert stored["spec"] == {"groups": [{"name": "g"}]}
    assert stored["metadata"]["labels"] == {"x": "y"}


def test_prometheus_rule_create_failure_is_reported():
    rule = {"metadata": {"name": "alerts"}, "spec": {}}
    with pytest.raises(ApiError, match="failed to create prometheusRules"):
        create_or_update_prometheus_rule(_FailingClient(), rule)