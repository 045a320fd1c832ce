"""Decide which operator config map events should trigger reconciliation."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)

_CSI_SETTING = re.compile(r'"RAW_DEVICE_|"CSI_|"KUBELET_.')


def _is_config_map(obj: object) -> bool:
    return isinstance(obj, dict) and obj.get("kind", "ConfigMap") == "ConfigMap"


def _name(obj: dict) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def _describe(obj: object) -> str:
    if isinstance(obj, dict):
        return _name(obj) or "<unnamed>"
    return type(obj).__name__


def config_map_diff(old: Mapping[str, str] | None, new: Mapping[str, str] | None) -> str:
    """A readable diff of two config map data mappings; empty when they are equal.

    Keys and values are quoted, removed entries start with ``-`` and added
    entries with ``+``.
    """
    old = old or {}
    new = new or {}
    lines = []
    for key in sorted(set(old) | set(new)):
        in_old, in_new = key in old, key in new
        if in_old and in_new and old[key] == new[key]:
            continue
        if in_old:
            lines.append(f"- \t{json.dumps(key)}: {json.dumps(old[key])},")
        if in_new:
            lines.append(f"+ \t{json.dumps(key)}: {json.dumps(new[key])},")
    if not lines:
        return ""
    return "\n".join(["  map[string]string{", *lines, "  }"]) + "\n"


def find_csi_change(text: str) -> bool:
    """True if the diff text mentions a raw device, CSI or kubelet setting."""
    found = _CSI_SETTING.findall(text)
    for match in found:
        logger.info("raw-device csi config changed with: %r", match)
    return bool(found)


@dataclass(frozen=True)
class ConfigMapPredicate:
    """Filters events on the operator settings config map called ``config_map_name``."""

    config_map_name: str

    def create(self, obj: object) -> bool:
        """Reconcile when the settings config map is created."""
        return _is_config_map(obj) and _name(obj) == self.config_map_name

    def update(self, old: object, new: object) -> bool:
        """Reconcile when an update of the settings changes a CSI related key."""
        if not (_is_config_map(old) and _is_config_map(new)):
            return False
        if _name(old) != self.config_map_name or _name(new) != self.config_map_name:
            return False
        diff = config_map_diff(old.get("data"), new.get("data"))
        logger.debug("operator configmap diff:\n %s", diff)
        return find_csi_change(diff)

    def _ignore(self, event: str, obj: object) -> bool:
        logger.debug("ignoring %s event for %s", event, _describe(obj))
        return False

    def delete(self, obj: object) -> bool:
        """Deletions never trigger reconciliation."""
        return self._ignore("delete", obj)

    def generic(self, obj: object) -> bool:
        """Generic events never trigger reconciliation."""
        return self._ignore("generic", obj)