"""Taints the cluster applies by itself, and tolerations parsed from YAML."""

from __future__ import annotations

import yaml

# Taint keys the cluster may add to nodes on its own.
WELL_KNOWN_TAINTS = (
    "node.kubernetes.io/not-ready",
    "node.kubernetes.io/unreachable",
    "node.kubernetes.io/unschedulable",
    "node.kubernetes.io/memory-pressure",
    "node.kubernetes.io/disk-pressure",
    "node.kubernetes.io/network-unavailable",
    "node.kubernetes.io/pid-pressure",
    "node.cloudprovider.kubernetes.io/uninitialized",
    "node.cloudprovider.kubernetes.io/shutdown",
)

_STRING_FIELDS = ("key", "operator", "value", "effect")


def taint_is_well_known(taint: dict) -> bool:
    """True if the taint's key is one the cluster applies by itself."""
    return taint.get("key") in WELL_KNOWN_TAINTS


def toleration_tolerates_taint(toleration: dict, taint: dict) -> bool:
    """True if ``toleration`` tolerates ``taint``.

    An empty effect or key in the toleration matches any. The ``Equal``
    operator (the default) also requires equal values; ``Exists`` does not.
    """
    effect = toleration.get("effect") or ""
    if effect and effect != (taint.get("effect") or ""):
        return False
    key = toleration.get("key") or ""
    if key and key != (taint.get("key") or ""):
        return False
    operator = toleration.get("operator") or ""
    if operator in ("", "Equal"):
        return (toleration.get("value") or "") == (taint.get("value") or "")
    return operator == "Exists"


def yaml_to_tolerations(raw: str) -> list[dict]:
    """Parse a YAML list of tolerations."""
    if raw == "":
        return []
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise ValueError(f"invalid tolerations yaml: {err}") from err
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("tolerations must be a list")
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("each toleration must be a mapping")
        for name in _STRING_FIELDS:
            if name in entry and entry[name] is not None and not isinstance(entry[name], str):
                raise ValueError(f"toleration {name} must be a string")
        seconds = entry.get("tolerationSeconds")
        if seconds is not None and (isinstance(seconds, bool) or not isinstance(seconds, int)):
            raise ValueError("tolerationSeconds must be an integer")
    return data