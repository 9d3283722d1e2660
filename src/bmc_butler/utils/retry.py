"""Bounded retry with a fixed delay between attempts."""
import logging

from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log,
)

from ..errors import EncCommandError

logger = logging.getLogger(__name__)


# External command failures worth another attempt
RETRYABLE_EXCEPTIONS = (
    EncCommandError,
)


def retrying(
    attempts: int = 3,
    delay: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> AsyncRetrying:
    """Build an async retry controller.

    Iterate it with ``async for attempt in retrying(...)`` and wrap the call in
    ``with attempt:``. The last exception is re-raised once attempts run out.

    Args:
        attempts: Total number of attempts, the first call included
        delay: Seconds to sleep between attempts
        exceptions: Tuple of exception types to retry on
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
