"""Helpers for pod environment variables and container lookup."""

from __future__ import annotations

POD_NAME_ENV_VAR = "POD_NAME"
POD_NAMESPACE_ENV_VAR = "POD_NAMESPACE"
NODE_NAME_ENV_VAR = "NODE_NAME"


def _field_env_var(name: str, field_path: str) -> dict:
    return {"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}}


def namespace_env_var() -> dict:
    """Env var exposing the pod namespace through the downward API."""
    return _field_env_var(POD_NAMESPACE_ENV_VAR, "metadata.namespace")


def name_env_var() -> dict:
    """Env var exposing the pod name through the downward API."""
    return _field_env_var(POD_NAME_ENV_VAR, "metadata.name")


def node_env_var() -> dict:
    """Env var exposing the node name through the downward API."""
    return _field_env_var(NODE_NAME_ENV_VAR, "spec.nodeName")


def get_matching_container(containers: list[dict], name: str) -> dict:
    """Return the container named ``name``; a lone container is returned whatever its name."""
    if len(containers) == 1:
        return containers[0]
    for container in containers:
        if container.get("name") == name:
            return container
    raise LookupError(f"failed to find image for container {name}")


def get_spec_container_image(spec: dict, name: str, init_container: bool = False) -> str:
    """Return the image of the named container (or init container) of a pod spec."""
    key = "initContainers" if init_container else "containers"
    container = get_matching_container(spec.get(key) or [], name)
    return container.get("image", "")


def get_container_image(pod: dict, name: str) -> str:
    """Return the image of the named container of a pod."""
    return get_spec_container_image(pod.get("spec") or {}, name, False)