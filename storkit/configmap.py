"""Create, patch, delete and read settings from config maps."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from storkit.errors import ApiError, NotFoundError
from storkit.options import DeleteOptions, WaitOptions, base_delete_options, delete_resource

logger = logging.getLogger(__name__)

_CONFIGMAP_WAIT_OPTIONS = WaitOptions(retry_count=20, retry_interval=2.0)


def _name(obj: dict) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def delete_config_map(configmaps, name: str, opts: DeleteOptions | None = None) -> None:
    """Delete a config map, honouring the delete and wait options."""
    delete_resource(
        lambda: configmaps.delete(name, base_delete_options()),
        lambda: configmaps.get(name),
        f"ConfigMap {name}",
        opts if opts is not None else DeleteOptions(),
        _CONFIGMAP_WAIT_OPTIONS,
    )


def create_replaceable_configmap(configmaps, configmap: dict) -> dict:
    """Create the config map, first deleting any existing one of the same name."""
    name = _name(configmap)
    try:
        configmaps.get(name)
    except NotFoundError:
        pass
    except ApiError as err:
        logger.warning("failed to detect configmap %s. %s", name, err)
    else:
        logger.info("Removing previous cm %s to start a new one", name)
        try:
            delete_config_map(configmaps, name, DeleteOptions(must_delete=True))
        except (ApiError, TimeoutError) as err:
            logger.warning("failed to remove configmap %s. %s", name, err)
    return configmaps.create(configmap)


def create_or_patch_configmap(configmaps, configmap: dict) -> None:
    """Create the config map, or patch the existing one to match it."""
    name = _name(configmap)
    try:
        existing = configmaps.get(name)
    except NotFoundError:
        pass
    except ApiError as err:
        logger.warning("failed to detect configmap %s. %s", name, err)
    else:
        logger.info("patching previous cm %s", name)
        patch_config_map(configmaps, existing, configmap)
        return
    configmaps.create(configmap)


def create_two_way_merge_patch(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict:
    """A merge patch that turns ``old`` into ``new``; removed keys map to ``None``."""
    patch: dict[str, Any] = {}
    for key, value in new.items():
        if key not in old:
            patch[key] = value
        elif isinstance(value, dict) and isinstance(old[key], dict):
            nested = create_two_way_merge_patch(old[key], value)
            if nested:
                patch[key] = nested
        elif value != old[key]:
            patch[key] = value
    for key in old:
        if key not in new:
            patch[key] = None
    return patch


def patch_config_map(configmaps, old: dict, new: dict) -> None:
    """Patch the stored ``old`` config map so it matches ``new``."""
    name = _name(old)
    patch = create_two_way_merge_patch(old, new)
    try:
        configmaps.patch(name, patch)
    except ApiError as err:
        logger.info("failed to patch configmap %s: %s", name, err)
        raise


def _from_env_or_default(setting_name: str, default_value: str) -> str:
    value = os.environ.get(setting_name)
    if value is not None:
        logger.info("%s=%r (env var)", setting_name, value)
        return value
    logger.info("%s=%r (default)", setting_name, default_value)
    return default_value


def get_operator_setting(
    configmaps, config_map_name: str, setting_name: str, default_value: str
) -> str:
    """A setting from the operator config map, else the environment, else the default."""
    try:
        configmap = configmaps.get(config_map_name)
    except NotFoundError:
        return _from_env_or_default(setting_name, default_value)
    except ApiError as err:
        raise ApiError(f"error reading ConfigMap {config_map_name!r}. {err}") from err
    return get_value(configmap.get("data"), setting_name, default_value)


def get_value(data: Mapping[str, str] | None, setting_name: str, default_value: str) -> str:
    """A setting from ``data``, else the environment, else the default."""
    if data and setting_name in data:
        value = data[setting_name]
        logger.info("%s=%r (configmap)", setting_name, value)
        return value
    return _from_env_or_default(setting_name, default_value)