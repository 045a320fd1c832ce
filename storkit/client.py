"""An in-memory store of cluster objects, and a status update helper."""

from __future__ import annotations

import copy
import itertools
from typing import Any

from storkit.errors import AlreadyExistsError, ApiError, InvalidError, NotFoundError
from storkit.node import LabelSelector, Operator, Requirement


def _parse_label_selector(text: str) -> LabelSelector:
    requirements = []
    for token in (part.strip() for part in text.split(",")):
        if not token:
            continue
        if "!=" in token:
            key, value = token.split("!=", 1)
            requirements.append(Requirement(key.strip(), Operator.NOT_IN, (value.strip(),)))
        elif "=" in token:
            key, value = token.replace("==", "=", 1).split("=", 1)
            requirements.append(Requirement(key.strip(), Operator.IN, (value.strip(),)))
        elif token.startswith("!"):
            requirements.append(Requirement(token[1:].strip(), Operator.DOES_NOT_EXIST))
        else:
            requirements.append(Requirement(token, Operator.EXISTS))
    return LabelSelector(tuple(requirements))


def _merge_patch(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _merge_patch(result.get(key), value)
    return result


class InMemoryResourceClient:
    """Objects of one kind in one namespace, kept by name.

    Objects are plain mappings with a ``metadata`` section. Reads and writes
    copy, so callers never share state with the store. With
    ``status_subresource`` an update keeps the stored status and
    :meth:`update_status` changes only the status; without it, updates replace
    the whole object and :meth:`update_status` reports the object as not found.
    """

    def __init__(self, objects=(), *, kind: str = "object", status_subresource: bool = True):
        self.kind = kind
        self.status_subresource = status_subresource
        self._objects: dict[str, dict] = {}
        self._versions = itertools.count(1)
        for obj in objects:
            self.create(obj)

    def __contains__(self, name: object) -> bool:
        return name in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def _name_of(self, obj: dict) -> str:
        name = (obj.get("metadata") or {}).get("name", "")
        if not name:
            raise InvalidError(f"{self.kind} name is required")
        return name

    def _stored(self, name: str) -> dict:
        try:
            return self._objects[name]
        except KeyError:
            raise NotFoundError(f'{self.kind} "{name}" not found') from None

    def _store(self, name: str, obj: dict) -> dict:
        obj.setdefault("metadata", {})["resourceVersion"] = str(next(self._versions))
        self._objects[name] = obj
        return copy.deepcopy(obj)

    def get(self, name: str) -> dict:
        return copy.deepcopy(self._stored(name))

    def list(self, label_selector: str = "") -> list[dict]:
        selector = _parse_label_selector(label_selector)
        return [
            copy.deepcopy(obj)
            for obj in self._objects.values()
            if selector.matches((obj.get("metadata") or {}).get("labels"))
        ]

    def create(self, obj: dict) -> dict:
        name = self._name_of(obj)
        if name in self._objects:
            raise AlreadyExistsError(f'{self.kind} "{name}" already exists')
        return self._store(name, copy.deepcopy(obj))

    def update(self, obj: dict) -> dict:
        name = self._name_of(obj)
        existing = self._stored(name)
        new = copy.deepcopy(obj)
        if self.status_subresource:
            if "status" in existing:
                new["status"] = copy.deepcopy(existing["status"])
            else:
                new.pop("status", None)
        return self._store(name, new)

    def update_status(self, obj: dict) -> dict:
        name = self._name_of(obj)
        if not self.status_subresource:
            raise NotFoundError(f"{self.kind} has no status subresource")
        new = copy.deepcopy(self._stored(name))
        new["status"] = copy.deepcopy(obj.get("status"))
        return self._store(name, new)

    def patch(self, name: str, patch: dict) -> dict:
        """Apply a JSON merge patch: mappings merge, ``None`` removes a key."""
        existing = self._stored(name)
        merged = _merge_patch(existing, patch)
        merged.setdefault("metadata", {})["name"] = name
        return self._store(name, merged)

    def delete(self, name: str, options: dict | None = None) -> None:
        self._stored(name)
        del self._objects[name]


def update_status(client, obj: dict) -> None:
    """Update the status of ``obj``, falling back to a full update when there is no status."""
    metadata = obj.get("metadata") if isinstance(obj, dict) else None
    if not isinstance(metadata, dict):
        raise ApiError("failed to get meta information of object")
    name = metadata.get("name", "")
    try:
        try:
            client.update_status(obj)
        except NotFoundError:
            client.update(obj)
    except ApiError as err:
        raise ApiError(f"failed to update object {name!r} status: {err}") from err