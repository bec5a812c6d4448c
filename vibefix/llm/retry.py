"""
Retry
=====
Generic "retry on transient failure" wrapper around one async operation.

Retry Policy:
    - At most max_attempts calls (default 3)
    - Only TransientServiceError is retried (quota, 5xx, network)
    - Any other exception propagates immediately
    - Delay before attempt n+1: base_delay * 2**(n-1) + jitter in [0, max_jitter)
    - After the last attempt the last error is re-raised unchanged

The delay is an asyncio.sleep inside the awaiting task. It cannot be
cancelled separately; a caller that gives up simply discards the result.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from vibefix.core.constants import MAX_ATTEMPTS
from vibefix.core.errors import TransientServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_jitter: float = 0.5,
    jitter: Callable[[], float] = random.random,
) -> float:
    """
    Seconds to wait after the given 1-based failed attempt.

    With jitter() in [0, 1) and max_jitter <= base_delay the delays are
    strictly increasing: 1.0–1.5, 2.0–2.5, 4.0–4.5, ...
    """
    return base_delay * (2 ** (attempt - 1)) + jitter() * max_jitter


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = MAX_ATTEMPTS,
    base_delay: float = 1.0,
    max_jitter: float = 0.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    jitter: Callable[[], float] = random.random,
    label: str = "",
) -> T:
    """
    Await operation(), retrying transient failures with exponential backoff.

    Parameters
    ----------
    operation : callable
        Zero-argument coroutine factory; called once per attempt.
    max_attempts : int
        Upper bound on calls, including the first.
    base_delay : float
        Delay in seconds after the first failed attempt.
    max_jitter : float
        Upper bound of the random delay added to every backoff.
    sleep : callable
        Awaitable sleep, injectable for tests.
    jitter : callable
        Returns a float in [0, 1), injectable for tests.
    label : str
        Name used in log lines (usually the model identifier).

    Returns
    -------
    T
        Whatever the operation returns on its first successful attempt.
    """
    attempts = max(1, max_attempts)
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientServiceError as e:
            if attempt >= attempts:
                logger.warning(
                    "%s attempt %d/%d: %s, giving up",
                    label or "request", attempt, attempts, e.failure_class,
                )
                raise
            delay = backoff_delay(attempt, base_delay, max_jitter, jitter)
            logger.warning(
                "%s attempt %d/%d: %s, retrying in %.2fs",
                label or "request", attempt, attempts, e.failure_class, delay,
            )
        await sleep(delay)
        attempt += 1
