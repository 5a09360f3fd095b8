"""
Bounded retry for external calls.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

import httpx
from botocore.exceptions import ConnectionError as BotoConnectionError
from botocore.exceptions import ReadTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    asyncio.TimeoutError,
    httpx.TransportError,
    BotoConnectionError,
    ReadTimeoutError,
)


async def retry_async(
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
    description: str = "call",
) -> T:
    """
    Await `call()` up to `max_attempts` times with exponential backoff.

    Only exceptions listed in `retry_on` are retried; anything else
    propagates on the first attempt. The last transient error is
    re-raised once attempts are exhausted.
    """
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await call()
        except retry_on as e:
            if attempt >= attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                f"Attempt {attempt}/{attempts} for {description} failed: {e!r}, retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")
