"""Task-group helpers with first-error cancellation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def _cancel_and_drain(tasks: Iterable[asyncio.Task[Any]]) -> None:
    """Cancel pending tasks and wait until every one has finished."""
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def run_all(branches: dict[str, Coroutine[Any, Any, Any]]) -> dict[str, Any]:
    """Run named branches concurrently and join on all or first error.

    When any branch raises, every branch still running is cancelled and
    awaited before the error propagates, so no branch outlives the call.

    Args:
        branches: Mapping of branch name to coroutine

    Returns:
        Mapping of branch name to result, once every branch succeeded.

    Raises:
        Exception: The error of the first branch to fail
    """
    tasks = {
        name: asyncio.create_task(coro, name=name) for name, coro in branches.items()
    }
    if not tasks:
        return {}

    try:
        done, pending = await asyncio.wait(
            tasks.values(), return_when=asyncio.FIRST_EXCEPTION
        )
    except asyncio.CancelledError:
        await _cancel_and_drain(tasks.values())
        raise

    failed = [task for task in done if task.exception() is not None]
    if failed:
        first = failed[0]
        logger.debug(
            f"Branch '{first.get_name()}' failed; cancelling {len(pending)} "
            "outstanding branch(es)"
        )
        await _cancel_and_drain(pending)
        raise first.exception()  # type: ignore[misc]

    return {name: task.result() for name, task in tasks.items()}


async def bounded_map(
    func: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    limit: int,
) -> list[R]:
    """Apply ``func`` to every item with at most ``limit`` calls in flight.

    Fails fast: the first error cancels the remaining work and propagates.
    Results keep the order of ``items``.

    Args:
        func: Coroutine function to apply
        items: Items to process
        limit: Maximum number of concurrent calls

    Returns:
        Results in the same order as ``items``.
    """
    semaphore = asyncio.Semaphore(limit)

    async def run_one(item: T) -> R:
        async with semaphore:
            return await func(item)

    tasks = [asyncio.create_task(run_one(item)) for item in items]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel_and_drain(tasks)
        raise

    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            await _cancel_and_drain(pending)
            raise task.exception()  # type: ignore[misc]

    return [task.result() for task in tasks]
