"""
Exponential backoff for reads.

Only NetworkError is retried. Validation, permission and not-found errors
propagate immediately. Write paths must not use this helper.
"""

import time
from typing import Callable, Optional, TypeVar

from app.core.exceptions import NetworkError
from app.core.settings import settings
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_read(
    fn: Callable[..., T],
    *args,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> T:
    """
    Call fn(*args, **kwargs), retrying on NetworkError.

    The delay before retry n (1-based) is base_delay * 2 ** n, so the
    defaults wait 2s then 4s across three attempts.
    """
    attempts = attempts or settings.READ_RETRY_ATTEMPTS
    base_delay = settings.READ_RETRY_BASE_DELAY if base_delay is None else base_delay

    last_error: Optional[NetworkError] = None
    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except NetworkError as e:
            last_error = e
            if attempt < attempts:
                delay = base_delay * (2 ** attempt)
                logger.warning(f"Read failed (attempt {attempt}/{attempts}), retrying in {delay:.1f}s: {e}")
                sleep(delay)

    logger.error(f"Read failed after {attempts} attempts: {last_error}")
    raise last_error
