"""Create, update and delete daemon sets, deployments, CSI drivers and raw devices."""

from __future__ import annotations

import copy
import json
import logging
import time
from typing import Callable

from storkit.errors import AlreadyExistsError, ApiError, NotFoundError

logger = logging.getLogger(__name__)

LAST_APPLIED_ANNOTATION = "banzaicloud.com/last-applied"

_DELETE_WAIT_ATTEMPTS = 45
_DELETE_WAIT_INTERVAL = 2.0


def _name(obj: dict) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def _delete_resource_and_wait(
    name: str,
    resource_type: str,
    delete_action: Callable[[dict], object],
    get_action: Callable[[], object],
) -> None:
    """Delete a resource, then wait until it is gone from the cluster."""
    options = {"gracePeriodSeconds": 0, "propagationPolicy": "Foreground"}
    logger.info("removing %s %s if it exists", resource_type, name)
    try:
        delete_action(options)
    except NotFoundError:
        return
    except ApiError as err:
        raise ApiError(f"failed to delete {name}. {err}") from err
    logger.info("Removed %s %s", resource_type, name)

    for attempt in range(_DELETE_WAIT_ATTEMPTS):
        try:
            get_action()
        except NotFoundError:
            logger.info("confirmed %s does not exist", name)
            return
        except ApiError as err:
            raise ApiError(f"failed to get {name}. {err}") from err
        if attempt % 5 == 0:
            logger.info("%r still found. waiting...", name)
        time.sleep(_DELETE_WAIT_INTERVAL)

    raise TimeoutError(f"gave up waiting for {name} pods to be terminated")


def create_daemon_set(name: str, daemonsets, ds: dict) -> None:
    """Create the daemon set, or update it if it already exists."""
    try:
        try:
            daemonsets.create(ds)
        except AlreadyExistsError:
            daemonsets.update(ds)
    except ApiError as err:
        raise ApiError(f"failed to start {name} daemonset: {err}") from err


def delete_daemonset(daemonsets, name: str) -> None:
    """Delete a daemon set and wait for it to disappear; a missing one is fine."""
    _delete_resource_and_wait(
        name,
        "daemonset",
        lambda options: daemonsets.delete(name, options),
        lambda: daemonsets.get(name),
    )


def get_daemonsets(daemonsets, label_selector: str) -> list[dict]:
    """Daemon sets whose labels match ``label_selector`` (e.g. ``app=a,mon!=b``)."""
    try:
        return daemonsets.list(label_selector)
    except ApiError as err:
        raise ApiError(
            f"failed to list deployments with labelSelector {label_selector}: {err}"
        ) from err


def get_daemonset(daemonsets, name: str) -> dict:
    """The daemon set called ``name``."""
    try:
        return daemonsets.get(name)
    except ApiError as err:
        raise ApiError(f"failed to get daemonset  {name}: {err}") from err


def _set_last_applied_annotation(obj: dict) -> None:
    snapshot = copy.deepcopy(obj)
    annotations = (snapshot.get("metadata") or {}).get("annotations")
    if annotations:
        annotations.pop(LAST_APPLIED_ANNOTATION, None)
        if not annotations:
            del snapshot["metadata"]["annotations"]
    encoded = json.dumps(snapshot, sort_keys=True, separators=(",", ":"))
    metadata = obj.setdefault("metadata", {})
    metadata.setdefault("annotations", {})[LAST_APPLIED_ANNOTATION] = encoded


def create_deployment(deployments, dep: dict) -> dict:
    """Record the last-applied annotation on ``dep`` and create it."""
    try:
        _set_last_applied_annotation(dep)
    except (TypeError, ValueError) as err:
        raise ApiError(f"failed to set hash annotation on deployment {_name(dep)!r}: {err}") from err
    return deployments.create(dep)


def delete_deployment(deployments, name: str) -> None:
    """Delete a deployment and wait for it to disappear; a missing one is fine."""
    logger.debug("removing %s deployment if it exists", name)
    _delete_resource_and_wait(
        name,
        "deployment",
        lambda options: deployments.delete(name, options),
        lambda: deployments.get(name),
    )


def create_or_update_deployment(deployments, dep: dict) -> dict:
    """Create the deployment, or update it if it already exists."""
    try:
        try:
            return create_deployment(deployments, dep)
        except AlreadyExistsError:
            # the annotation was set on dep by create_deployment
            return deployments.update(dep)
    except ApiError as err:
        logger.error("CreateOrUpdateDeployment failed deploy %s, err %s", _name(dep), err)
        raise ApiError(f"failed to create or update deployment {_name(dep)!r}: {err}") from err


def get_deployment_owner_reference(pods, replicasets, pod_name: str) -> dict:
    """The owner reference of the deployment whose replica set runs ``pod_name``."""
    try:
        pod = pods.get(pod_name)
    except ApiError as err:
        raise ApiError(
            f"could not find pod {pod_name!r} to find deployment owner reference: {err}"
        ) from err

    deployment_ref = None
    for pod_owner in (pod.get("metadata") or {}).get("ownerReferences") or []:
        if pod_owner.get("kind") != "ReplicaSet":
            continue
        rs_name = pod_owner.get("name", "")
        try:
            replicaset = replicasets.get(rs_name)
        except ApiError as err:
            raise ApiError(
                f"could not find replicaset {rs_name!r} to find deployment owner reference: {err}"
            ) from err
        for rs_owner in (replicaset.get("metadata") or {}).get("ownerReferences") or []:
            if rs_owner.get("kind") == "Deployment":
                deployment_ref = dict(rs_owner)

    if deployment_ref is None:
        raise LookupError("could not find owner reference for deployment")
    return deployment_ref


def check_deployment_is_existing(deployments, name: str) -> bool:
    """True if the deployment exists."""
    try:
        deployments.get(name)
    except NotFoundError:
        return False
    except ApiError as err:
        raise ApiError(f"failed to detect deployment {name}: {err}") from err
    return True


def create_csi_driver(drivers, driver: dict) -> None:
    """Create a CSI driver; one that already exists is left as it is."""
    try:
        drivers.create(driver)
    except AlreadyExistsError:
        pass


def delete_csi_driver(drivers, name: str) -> None:
    """Delete a CSI driver; a missing one is fine."""
    try:
        drivers.delete(name, {})
    except NotFoundError:
        pass


def create_raw_device(devices, device: dict) -> dict:
    """Create a raw device object."""
    return devices.create(device)


def create_or_update_raw_device(devices, device: dict) -> dict:
    """Create a raw device, or replace the spec of the existing one."""
    try:
        return create_raw_device(devices, device)
    except AlreadyExistsError:
        existing = devices.get(_name(device))
        existing["spec"] = copy.deepcopy(device.get("spec"))
        return devices.update(existing)