"""
Retry policy shared by the source and destination gateways.
"""

import time
from typing import Callable

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from exceptions import TransientNetworkError

logger = structlog.get_logger(__name__)


def create_transient_retry(
    max_attempts: int = 4,
    base_delay_seconds: float = 1.0,
    max_delay_seconds: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """
    Tenacity policy for TransientNetworkError.

    Full-jitter exponential backoff; the last error is re-raised
    once attempts run out.
    """

    def _log_retry(retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "transient_error_retrying",
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            error=str(exc) if exc else None,
        )

    return Retrying(
        retry=retry_if_exception_type(TransientNetworkError),
        wait=wait_random_exponential(multiplier=base_delay_seconds, max=max_delay_seconds),
        stop=stop_after_attempt(max_attempts),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
