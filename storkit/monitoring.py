"""Load and apply service monitors and alerting rules."""

from __future__ import annotations

import copy
import logging
import os

import yaml

from storkit.errors import AlreadyExistsError, ApiError, NotFoundError

logger = logging.getLogger(__name__)


def _name(obj: dict) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def _load_object(path: str, what: str) -> dict:
    """Read the first YAML or JSON document of a file as a mapping."""
    try:
        with open(os.path.normpath(path), encoding="utf-8") as handle:
            text = handle.read()
    except OSError as err:
        raise OSError(f"{what} file could not be fetched. {err}") from err
    try:
        document = next(iter(yaml.safe_load_all(text)), None)
    except yaml.YAMLError as err:
        raise ValueError(f"{what} could not be decoded. {err}") from err
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"{what} could not be decoded. expected a mapping")
    return document


def get_service_monitor(path: str) -> dict:
    """Read a service monitor definition from a YAML or JSON file."""
    return _load_object(path, "servicemonitor")


def create_or_update_service_monitor(monitors, definition: dict) -> dict:
    """Create the service monitor, or replace the spec of the existing one."""
    name = _name(definition)
    logger.debug("creating servicemonitor %s", name)
    try:
        existing = monitors.get(name)
    except NotFoundError:
        try:
            return monitors.create(definition)
        except ApiError as err:
            raise ApiError(f"failed to create servicemonitor. {err}") from err
    except ApiError as err:
        raise ApiError(f"failed to retrieve servicemonitor. {err}") from err

    existing["spec"] = copy.deepcopy(definition.get("spec"))
    try:
        return monitors.update(existing)
    except ApiError as err:
        raise ApiError(f"failed to update servicemonitor. {err}") from err


def get_prometheus_rule(path: str) -> dict:
    """Read an alerting rule definition from a YAML or JSON file."""
    return _load_object(path, "prometheusRules")


def create_or_update_prometheus_rule(rules, rule: dict) -> dict:
    """Create the rule, or replace the spec of the existing one."""
    name = _name(rule)
    logger.debug("creating prometheusRule %s", name)
    try:
        return rules.create(rule)
    except AlreadyExistsError:
        pass
    except ApiError as err:
        raise ApiError(f"failed to create prometheusRules. {err}") from err

    # fetch the current object so its resource version is kept on update
    try:
        existing = rules.get(name)
    except ApiError as err:
        raise ApiError(f"failed to get prometheusRule object. {err}") from err
    existing["spec"] = copy.deepcopy(rule.get("spec"))
    try:
        return rules.update(existing)
    except ApiError as err:
        raise ApiError(f"failed to update prometheusRule. {err}") from err