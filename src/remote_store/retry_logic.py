"""Retry logic with exponential backoff for remote store calls.

This module retries operations that failed with a RateLimitedError or a
TransientNetworkError. It implements exponential backoff (1s, 2s, 4s, ...)
and fails fast for every other error, including authentication failures and
revision conflicts which require a decision by the caller.
"""

import time
import logging
from typing import Callable, TypeVar

from .errors import RateLimitedError, TransientNetworkError

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_MAX_RETRIES = 3

RETRYABLE_ERRORS = (RateLimitedError, TransientNetworkError)


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run func, retrying retryable failures with exponential backoff.

    The first attempt is followed by up to max_retries retries, waiting
    1s, 2s, 4s, ... in between. A RateLimitedError carrying a larger
    retry_after hint waits that long instead.

    Args:
        func: Zero-argument callable performing one remote operation
        max_retries: Number of retries after the first attempt
        sleep: Sleep function (injectable for tests)

    Returns:
        The return value of func

    Raises:
        RateLimitedError, TransientNetworkError: The last failure once retries
            are exhausted
        Other exceptions: Passed through immediately without retry

    Example:
        >>> revision = retry_with_backoff(lambda: transport.write(...))
    """
    for retry_num in range(max_retries + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as e:
            if retry_num >= max_retries:
                logger.error(f"{e} (giving up after {max_retries} retries)")
                raise

            wait_time = float(2 ** retry_num)
            if isinstance(e, RateLimitedError) and e.retry_after:
                wait_time = max(wait_time, float(e.retry_after))

            logger.info(
                f"{type(e).__name__}: retrying in {wait_time:g}s "
                f"(retry {retry_num + 1}/{max_retries})"
            )
            sleep(wait_time)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry_with_backoff exhausted without result")
