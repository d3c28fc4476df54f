# -*- coding: utf-8 -*-
"""Fixed-interval polling with a wall-clock deadline."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollTimeout(Exception):
    """Raised when the deadline passes before a terminal value was seen."""

    def __init__(self, timeout: float, attempts: int) -> None:
        super().__init__(f"No terminal result after {timeout:g}s ({attempts} attempts)")
        self.timeout = timeout
        self.attempts = attempts


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    *,
    interval: float,
    timeout: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``fetch`` until ``is_done`` accepts its value or ``timeout`` passes.

    The first fetch happens immediately. Between fetches the poller sleeps for
    ``interval`` seconds, never past the deadline, so a value that never
    becomes terminal raises :class:`PollTimeout` once ``timeout`` seconds have
    elapsed. Errors raised by ``fetch`` propagate unchanged. Cancelling the
    awaiting task stops the loop at its next await.
    """
    if interval <= 0 or timeout <= 0:
        raise ValueError("interval and timeout must be positive")

    deadline = clock() + timeout
    attempts = 0
    while True:
        value = await fetch()
        attempts += 1
        if is_done(value):
            return value
        remaining = deadline - clock()
        if remaining <= 0:
            raise PollTimeout(timeout, attempts)
        logger.debug("Poll attempt %d not terminal, next check in %.1fs", attempts, min(interval, remaining))
        await sleep(min(interval, remaining))
