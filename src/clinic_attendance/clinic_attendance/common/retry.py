from __future__ import annotations

import logging

from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from ..core.constants import DEFAULT_STORE_RETRY_ATTEMPTS
from ..core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)


def store_retry(attempts: int = DEFAULT_STORE_RETRY_ATTEMPTS, *, initial: float = 0.2, max_wait: float = 2.0):
    """Retry a store call on transient connection errors with exponential backoff + jitter.

    The last error is re-raised once attempts are exhausted.
    """

    return retry(
        retry=retry_if_exception_type(TransientStoreError),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=initial, max=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
