import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from creative_studio.errors import PollTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def poll_until(
    initial: T,
    refresh: Callable[[T], Awaitable[T]],
    is_done: Callable[[T], bool],
    interval: float,
    *,
    sleep: Sleep = asyncio.sleep,
    timeout: Optional[float] = None,
) -> T:
    """Refresh ``initial`` every ``interval`` seconds until ``is_done`` holds.

    Each cycle sleeps first and then refreshes once, so a handle that is
    already done is returned without any refresh. ``timeout`` bounds the
    total time spent sleeping; None waits indefinitely.
    """
    current = initial
    waited = 0.0
    attempts = 0
    while not is_done(current):
        if timeout is not None and waited + interval > timeout:
            raise PollTimeout(f"Video generation did not finish within {timeout:g} seconds.")
        await sleep(interval)
        waited += interval
        attempts += 1
        current = await refresh(current)
        logger.debug("Poll attempt %d after %.0fs", attempts, waited)
    return current
