"""Bounded exponential backoff for upstream calls.

Only wrap calls that are safe to repeat: reads, or writes that carry an
idempotency key the upstream honours (Stripe ``Idempotency-Key``, LINE
``X-Line-Retry-Key``).
"""

import logging
from collections.abc import Awaitable, Callable

import anyio

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 2
DEFAULT_BASE_DELAY = 0.2  # seconds


def _calculate_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY) -> float:
    """Backoff before the retry that follows zero-indexed ``attempt``."""
    return base_delay * (2**attempt)


async def with_retry[T](
    fn: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    base_delay: float = DEFAULT_BASE_DELAY,
    operation: str | None = None,
) -> T:
    """Await ``fn()`` up to ``attempts`` times.

    Only errors listed in ``exceptions`` trigger another attempt; anything
    else propagates at once. When every attempt fails, the last error is
    re-raised unchanged so callers can translate it.

    Example:
        response = await with_retry(
            lambda: client.get(f"/v1/customers/{customer_id}", headers=headers),
            exceptions=(httpx.RequestError,),
            operation="get_customer",
        )
    """
    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except exceptions as e:
            if attempt == attempts:
                raise
            delay = _calculate_delay(attempt - 1, base_delay)
            logger.debug(
                "Retrying %s after %s (attempt %d/%d, sleeping %.2fs)",
                operation or "operation",
                type(e).__name__,
                attempt,
                attempts,
                delay,
            )
            await anyio.sleep(delay)
    raise ValueError("attempts must be at least 1")
