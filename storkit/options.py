"""Options that control waiting and deletion, and the generic delete loop."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from storkit.errors import ApiError, NotFoundError

logger = logging.getLogger(__name__)

_FALLBACK_RETRY_COUNT = 30
_FALLBACK_RETRY_INTERVAL = 5.0


@dataclass
class WaitOptions:
    """Whether and how an operation waits to verify that it succeeded.

    ``retry_interval`` is in seconds. A zero ``retry_count`` or ``retry_interval``
    means the operation picks its own default.
    """

    wait: bool = False
    retry_count: int = 0
    retry_interval: float = 0.0
    error_on_timeout: bool = False

    def retry_count_or_default(self, default: int) -> int:
        return self.retry_count if self.retry_count > 0 else default

    def retry_interval_or_default(self, default: float) -> float:
        return self.retry_interval if self.retry_interval > 0 else default


@dataclass
class DeleteOptions(WaitOptions):
    """Wait options plus whether a missing resource counts as a failure."""

    must_delete: bool = False


def base_delete_options() -> dict:
    """Delete options most delete calls should use: no grace period, foreground propagation."""
    return {"gracePeriodSeconds": 0, "propagationPolicy": "Foreground"}


def delete_resource(
    delete: Callable[[], object],
    verify: Callable[[], object],
    resource: str,
    opts: DeleteOptions,
    default_wait_options: WaitOptions | None,
) -> None:
    """Delete a resource and optionally wait until ``verify`` reports it gone.

    ``delete`` and ``verify`` raise :class:`NotFoundError` when the resource is
    absent. ``verify`` returning normally means the resource still exists.
    """
    if default_wait_options is None:
        default_wait_options = WaitOptions()

    try:
        delete()
    except NotFoundError as err:
        if opts.must_delete:
            raise ApiError(f"failed to delete {resource}; it does not exist. {err}") from err
        logger.debug("%s is already deleted", resource)
        return
    except Exception as err:
        raise ApiError(f"failed to delete {resource}. {err}") from err

    if not opts.wait:
        return

    retries = opts.retry_count_or_default(
        default_wait_options.retry_count_or_default(_FALLBACK_RETRY_COUNT)
    )
    interval = opts.retry_interval_or_default(
        default_wait_options.retry_interval_or_default(_FALLBACK_RETRY_INTERVAL)
    )

    last_error: Exception | None = None
    # attempt 0 is the first try; it is not a retry until attempt 1
    for attempt in range(retries + 1):
        try:
            verify()
            last_error = None
        except NotFoundError:
            logger.debug(
                "%s was deleted after %d retries every %s seconds", resource, attempt, interval
            )
            return
        except Exception as err:
            last_error = err
        remaining = retries - attempt
        logger.info(
            "Retrying %d more times every %s seconds for %s to be deleted",
            remaining,
            interval,
            resource,
        )
        if remaining > 0:
            time.sleep(interval)

    msg = (
        f"failed to delete {resource}. gave up waiting after {retries} retries "
        f"every {interval} seconds. {last_error}"
    )
    if opts.error_on_timeout:
        raise TimeoutError(msg)
    logger.warning(msg)