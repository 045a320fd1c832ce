"""Owner references, resource requirements and container resource settings."""

from __future__ import annotations

from dataclasses import dataclass, field

import yaml

_OWNER_REF_FIELDS = ("apiVersion", "kind", "name", "uid")
_MERGED_RESOURCES = ("cpu", "memory")


def _metadata(obj: dict) -> dict:
    return obj.setdefault("metadata", {})


def _parse_group_version(api_version: str) -> tuple[str, str]:
    if not api_version:
        return "", ""
    parts = api_version.split("/")
    if len(parts) == 1:
        return "", parts[0]
    if len(parts) == 2:
        return parts[0], parts[1]
    raise ValueError(f"unexpected GroupVersion string: {api_version}")


def refer_same_object(a: dict, b: dict) -> bool:
    """True if two owner references point at the same object (group, kind and name)."""
    try:
        group_a, _ = _parse_group_version(a.get("apiVersion", ""))
        group_b, _ = _parse_group_version(b.get("apiVersion", ""))
    except ValueError:
        return False
    return group_a == group_b and a.get("kind") == b.get("kind") and a.get("name") == b.get("name")


@dataclass
class OwnerInfo:
    """An owner reference to set on objects, and the namespace of its owner.

    An empty ``namespace`` means the owner is cluster-scoped.
    """

    owner_ref: dict | None = None
    namespace: str = ""

    @property
    def uid(self) -> str:
        return (self.owner_ref or {}).get("uid", "")

    def validate_owner(self, obj: dict) -> None:
        if not self.namespace:
            return
        meta = obj.get("metadata") or {}
        owner_name = (self.owner_ref or {}).get("name", "")
        object_namespace = meta.get("namespace", "")
        if not object_namespace:
            raise ValueError(
                f"cluster-scoped resource {meta.get('name', '')!r} must not have a namespaced "
                f"resource {owner_name!r} in namespace {self.namespace!r}"
            )
        if object_namespace != self.namespace:
            raise ValueError(
                f"cross-namespaced owner references are disallowed. resource "
                f"{meta.get('name', '')!r} is in namespace {object_namespace!r}, "
                f"owner {owner_name!r} is in {self.namespace!r}"
            )

    def validate_controller(self, obj: dict) -> None:
        meta = obj.get("metadata") or {}
        existing = next(
            (ref for ref in meta.get("ownerReferences") or [] if ref.get("controller")), None
        )
        if existing is not None and existing.get("uid") != self.uid:
            raise ValueError(
                f"{meta.get('name', '')!r} already set its controller "
                f"{(self.owner_ref or {}).get('name', '')!r}"
            )

    def set_owner_reference(self, obj: dict) -> None:
        """Add the owner reference to ``obj`` unless it already refers to the same owner."""
        if self.owner_ref is None:
            return
        self.validate_owner(obj)
        meta = _metadata(obj)
        refs = list(meta.get("ownerReferences") or [])
        if any(refer_same_object(ref, self.owner_ref) for ref in refs):
            return
        refs.append(dict(self.owner_ref))
        meta["ownerReferences"] = refs

    def set_controller_reference(self, obj: dict) -> None:
        """Add the owner reference to ``obj`` as its controller."""
        if self.owner_ref is None:
            return
        self.validate_owner(obj)
        self.validate_controller(obj)
        if self.owner_ref.get("blockOwnerDeletion") is None:
            self.owner_ref["blockOwnerDeletion"] = True
        self.owner_ref["controller"] = True
        meta = _metadata(obj)
        meta["ownerReferences"] = list(meta.get("ownerReferences") or []) + [dict(self.owner_ref)]


def merge_resource_requirements(first: dict, second: dict) -> dict:
    """Fill cpu and memory limits and requests missing from ``first`` with those of ``second``."""
    result = dict(first)
    for section in ("limits", "requests"):
        merged = dict(first.get(section) or {})
        fallback = second.get(section) or {}
        for resource in _MERGED_RESOURCES:
            if resource not in merged and resource in fallback:
                merged[resource] = fallback[resource]
        if merged:
            result[section] = merged
    return result


def set_owner_refs_without_block_owner(obj: dict, owner_refs: list[dict] | None) -> None:
    """Set copies of ``owner_refs`` on ``obj`` without the controller and blocking flags."""
    if owner_refs is None:
        return
    _metadata(obj)["ownerReferences"] = [
        {key: ref.get(key, "") for key in _OWNER_REF_FIELDS} for ref in owner_refs
    ]


@dataclass
class ContainerResource:
    """Resource requirements for one named container."""

    name: str
    resource: dict = field(default_factory=dict)


def _parse_requirements(raw: object) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"resource must be a mapping, got {type(raw).__name__}")
    result = {}
    for section in ("limits", "requests"):
        values = raw.get(section)
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValueError(f"resource {section} must be a mapping")
        result[section] = {str(k): str(v) for k, v in values.items()}
    return result


def yaml_to_container_resource(raw: str) -> list[ContainerResource]:
    """Parse a YAML list of ``{name, resource}`` entries."""
    if raw == "":
        return []
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise ValueError(f"invalid container resource yaml: {err}") from err
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("container resources must be a list")
    resources = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("each container resource must be a mapping")
        name = entry.get("name", "")
        if not isinstance(name, str):
            raise ValueError("container resource name must be a string")
        resources.append(ContainerResource(name=name, resource=_parse_requirements(entry.get("resource"))))
    return resources