"""
Retry helper for transient storage conflicts.

Deadlocks and serialization failures roll the whole unit of work back,
so re-running the use case from the top is always safe.
"""

import logging
import time
from functools import wraps
from typing import Callable, TypeVar

from lotqueue.domain.trading.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFLICT_MAX_RETRIES = 3
CONFLICT_INITIAL_DELAY = 0.05
CONFLICT_MULTIPLIER = 2.0


def retry_on_conflict(
    max_retries: int = CONFLICT_MAX_RETRIES,
    initial_delay: float = CONFLICT_INITIAL_DELAY,
    multiplier: float = CONFLICT_MULTIPLIER,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator re-running a function when it raises ConflictError.

    Args:
        max_retries: Attempts after the first one before giving up.
        initial_delay: Seconds to wait before the first retry.
        multiplier: Growth factor of the delay between retries.

    Example:
        @retry_on_conflict()
        def execute(self, command):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except ConflictError as exc:
                    if attempt >= max_retries:
                        logger.error(
                            "%s gave up after %d attempts: %s",
                            func.__qualname__,
                            attempt + 1,
                            exc.reason,
                        )
                        raise
                    logger.warning(
                        "%s hit a conflict (attempt %d), retrying in %.2fs",
                        func.__qualname__,
                        attempt + 1,
                        delay,
                    )
                    time.sleep(delay)
                    delay *= multiplier
            raise AssertionError("unreachable")

        return wrapper

    return decorator
