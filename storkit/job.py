"""Run, wait for and delete batch jobs."""

from __future__ import annotations

import logging
import time

from storkit.errors import ApiError, NotFoundError

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 5.0
_REPLACE_TIMEOUT = 3600.0
_DELETE_RETRIES = 20
_DELETE_INTERVAL = 2.0


def _name(obj: dict) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def _status_count(job: dict, field: str) -> int:
    return (job.get("status") or {}).get(field) or 0


def wait_for_job_completion(jobs, job: dict, timeout: float) -> None:
    """Poll until the job succeeds; raise if it fails or ``timeout`` seconds pass."""
    name = _name(job)
    logger.info("waiting for job %s to complete...", name)
    deadline = time.monotonic() + timeout
    while True:
        time.sleep(_POLL_INTERVAL)
        try:
            current = jobs.get(name)
        except ApiError as err:
            raise ApiError(f"failed to detect job {name}. {err}") from err

        if _status_count(current, "active") > 0:
            logger.debug("job is still running. Status=%s", current.get("status"))
        elif _status_count(current, "failed") > 0:
            raise ApiError(f"job {name} failed")
        elif _status_count(current, "succeeded") > 0:
            return
        else:
            logger.debug("job is still initializing")

        if time.monotonic() >= deadline:
            raise TimeoutError("timed out waiting for the condition")


def delete_batch_job(jobs, name: str, wait: bool) -> None:
    """Delete a job, optionally waiting a while for it to disappear."""
    options = {"gracePeriodSeconds": 0, "propagationPolicy": "Foreground"}
    try:
        jobs.delete(name, options)
    except NotFoundError:
        return
    except ApiError as err:
        raise ApiError(f"failed to remove previous provisioning job for node {name}. {err}") from err

    if not wait:
        return

    for _ in range(_DELETE_RETRIES):
        try:
            jobs.get(name)
        except NotFoundError:
            logger.info("batch job %s deleted", name)
            return
        except ApiError:
            pass
        logger.info("batch job %s still exists", name)
        time.sleep(_DELETE_INTERVAL)

    logger.warning("gave up waiting for batch job %s to be deleted", name)


def run_replaceable_job(jobs, job: dict, delete_if_found: bool) -> dict | None:
    """Run ``job``, replacing a previous job of the same name.

    A previous job that is still running is left alone unless
    ``delete_if_found`` is set; then ``None`` is returned. Otherwise the newly
    created job is returned.
    """
    name = _name(job)
    try:
        existing = jobs.get(name)
    except NotFoundError:
        pass
    except ApiError as err:
        logger.warning("failed to detect job %s. %s", name, err)
    else:
        if _status_count(existing, "active") > 0 and not delete_if_found:
            logger.info("Found previous job %s. Status=%s", name, existing.get("status"))
            return None

        try:
            wait_for_job_completion(jobs, existing, _REPLACE_TIMEOUT)
        except (ApiError, TimeoutError) as err:
            logger.error("wait for job completion failed err %s", err)

        logger.info("Removing previous job %s to start a new one", name)
        try:
            delete_batch_job(jobs, _name(existing), True)
        except ApiError as err:
            logger.warning("failed to remove job %s. %s", name, err)

    return jobs.create(job)