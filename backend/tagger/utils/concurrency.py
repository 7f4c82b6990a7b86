from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

T = TypeVar("T")
R = TypeVar("R")


async def bounded_gather(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    *,
    concurrency: int,
) -> list[R]:
    """Run `func` over `items` with at most `concurrency` calls in flight.

    Results come back in input order; completion order is unconstrained. The
    first exception cancels every call still running or waiting for a slot and
    is re-raised once they have all unwound. Cancelling the caller cancels all
    calls as well.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    semaphore = asyncio.Semaphore(concurrency)

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    tasks = [asyncio.create_task(_run(item)) for item in items]
    if not tasks:
        return []

    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
