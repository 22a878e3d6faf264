"""Backoff for throttled management API requests.

The management plane answers 429 when a subscription exceeds its request
budget. Idempotent requests (GET, PUT as upsert, DELETE) are replayed up to
MAX_RETRIES times, waiting 1s, 2s and 4s; any other failure propagates on
the first attempt.
"""

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3
THROTTLED_STATUS = 429
THROTTLE_MESSAGES = ('too many requests', 'rate limit exceeded', 'rate limited')


def retry_on_rate_limit(func: Callable[..., T], *args, **kwargs) -> T:
    """Call func, replaying it while the service reports throttling.

    Raises:
        The last throttling error once MAX_RETRIES replays are used up, or
        any other error from func unchanged.

    Example:
        >>> data = retry_on_rate_limit(client.send_request, "GET", "/contentTypes")
    """
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not _is_rate_limit_error(e):
                raise
            if attempt == MAX_RETRIES:
                logger.error(f"Still throttled after {MAX_RETRIES} retries, giving up")
                raise

            delay = 2 ** attempt
            attempt += 1
            logger.info(f"Throttled by the service, retry {attempt}/{MAX_RETRIES} in {delay}s")
            time.sleep(delay)


def _is_rate_limit_error(exception: Exception) -> bool:
    if getattr(exception, 'status_code', None) == THROTTLED_STATUS:
        return True

    # requests.HTTPError carries the status on its response
    response = getattr(exception, 'response', None)
    if getattr(response, 'status_code', None) == THROTTLED_STATUS:
        return True

    message = str(exception).lower()
    return any(pattern in message for pattern in THROTTLE_MESSAGES)
