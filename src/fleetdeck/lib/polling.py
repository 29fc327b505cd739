"""Bounded polling with fixed or exponential intervals.

A poll repeatedly awaits a probe until the probe's status satisfies a
terminal condition or the accumulated waiting time reaches the timeout.
Errors raised by the probe are not retried; only "not ready yet" statuses
are.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from fleetdeck.lib.errors import PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IntervalPolicy(Protocol):
    """Interval to sleep after a given (1-based) attempt."""

    def interval(self, attempt: int) -> float: ...


@dataclass(frozen=True)
class FixedInterval:
    """Sleep the same number of seconds after every attempt."""

    seconds: float

    def interval(self, attempt: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class ExponentialBackoff:
    """Sleep ``(2**attempt - 1) * base`` seconds after each attempt.

    Example:
        With base=0.5 the intervals are 0.5s, 1.5s, 3.5s, 7.5s, ...
    """

    base: float

    def interval(self, attempt: int) -> float:
        return (2**attempt - 1) * self.base


async def poll(
    probe: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    policy: IntervalPolicy,
    timeout: float,
    *,
    label: str = "poll",
    describe: Callable[[T | None], str] = str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Poll ``probe`` until ``is_done`` accepts its status.

    Elapsed time is the sum of the intervals slept so far. It is checked
    before every probe, so the probe is never invoked once the timeout has
    been reached.

    Args:
        probe: Coroutine function performing one remote query
        is_done: Predicate deciding whether polling can stop
        policy: Interval policy (FixedInterval or ExponentialBackoff)
        timeout: Budget in seconds for accumulated waiting
        label: Name used in log lines and timeout errors
        describe: Formats a status for logging
        sleep: Awaitable sleep function (injectable for tests)

    Returns:
        The first status accepted by ``is_done``.

    Raises:
        PollTimeoutError: If the budget is exhausted; carries the last status
        Exception: Whatever ``probe`` raises, unchanged
    """
    elapsed = 0.0
    attempt = 0
    status: T | None = None

    while True:
        if elapsed >= timeout:
            raise PollTimeoutError(label, elapsed, describe(status))

        attempt += 1
        logger.info(f"{label}: attempt {attempt} (status: {describe(status)})")
        status = await probe()

        if is_done(status):
            return status

        delay = policy.interval(attempt)
        logger.debug(f"{label}: not ready, sleeping {delay:g}s")
        await sleep(delay)
        elapsed += delay
