"""
Poll-until combinator shared by every wait in the recovery.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .errors import new_cancelled_error, new_poll_timeout_error

logger = logging.getLogger(__name__)


async def _sleep(delay: float, cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    interval: float,
    timeout: Optional[float] = None,
    description: str = "condition",
    cancel_event: Optional[asyncio.Event] = None,
) -> int:
    """Await ``predicate`` every ``interval`` seconds until it returns True.

    Polling uses a fixed interval with no backoff. With ``timeout`` left as
    None the loop waits indefinitely; otherwise a last attempt is made at
    the deadline before giving up. Exceptions raised by the predicate
    propagate unchanged.

    Args:
        predicate: Coroutine function returning True once the wait is over
        interval: Seconds between attempts
        timeout: Optional deadline in seconds, measured from the first attempt
        description: Human readable name of the awaited condition
        cancel_event: When set, the wait is abandoned between attempts

    Returns:
        int: Number of attempts made, including the successful one

    Raises:
        StandardError: POLL_TIMEOUT when the deadline passes, CANCELLED when
            ``cancel_event`` is set
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    attempts = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise new_cancelled_error(description)

        attempts += 1
        if await predicate():
            return attempts

        delay = interval
        if timeout is not None:
            remaining = timeout - (loop.time() - start)
            if remaining <= 0:
                raise new_poll_timeout_error(description, timeout, attempts)
            delay = min(interval, remaining)

        logger.debug(f"Waiting for {description} (attempt {attempts}), retrying in {delay:g}s")
        await _sleep(delay, cancel_event)
