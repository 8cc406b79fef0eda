"""Bounded exponential backoff for transient storage failures."""

import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.hb_common.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


def storage_retrying(
    attempts: int, max_wait_seconds: float, multiplier: float = 0.2
) -> AsyncRetrying:
    """Retry only StorageUnavailableError; anything else propagates at once.

    Usage:
        result = await storage_retrying(5, 10.0)(do_write, arg)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=multiplier, max=max_wait_seconds),
        retry=retry_if_exception_type(StorageUnavailableError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
