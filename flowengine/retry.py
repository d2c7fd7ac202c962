# flowengine/retry.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Tuple, Type

logger = logging.getLogger(__name__)


def backoff_schedule(max_attempts: int, base_delay: float) -> List[float]:
    """Delays slept between attempts: base, 2*base, 4*base, ..."""
    return [base_delay * (2 ** i) for i in range(max(max_attempts - 1, 0))]


async def retry_with_backoff(
    func: Callable[[], Awaitable[Any]],
    retry_on: Tuple[Type[BaseException], ...],
    max_attempts: int = 3,
    base_delay: float = 1.0,
) -> Any:
    """
    Await ``func()`` up to ``max_attempts`` times.

    Only exceptions in ``retry_on`` are retried; the last one is re-raised
    once attempts run out. Anything else propagates on the first failure.
    """
    max_attempts = max(max_attempts, 1)
    delays = backoff_schedule(max_attempts, base_delay)
    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except retry_on as e:
            if attempt >= max_attempts:
                logger.warning("all %d attempts failed: %s", max_attempts, e)
                raise
            delay = delays[attempt - 1]
            logger.info("attempt %d/%d failed, retrying in %.1fs: %s", attempt, max_attempts, delay, e)
            await asyncio.sleep(delay)
    raise RuntimeError("retry loop exited unexpectedly")
