"""Bounded concurrent execution helpers."""

import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def split_into_batches(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split a sequence into consecutive slices of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


async def gather_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int,
) -> List[R]:
    """
    Run ``worker`` over ``items`` with at most ``limit`` running at once.

    Results are returned in input order. If any worker raises, the remaining
    tasks are cancelled and the first error propagates.

    Args:
        items: Inputs to process
        worker: Coroutine function applied to each input
        limit: Maximum number of concurrently running workers

    Returns:
        One result per input, in input order
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    semaphore = asyncio.Semaphore(limit)

    async def run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    tasks = [asyncio.ensure_future(run(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def gather_in_chunks(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    chunk_size: int,
) -> List[R]:
    """Run ``worker`` chunk by chunk, each chunk fully concurrent."""
    results: List[R] = []
    for chunk in split_into_batches(items, chunk_size):
        results.extend(await asyncio.gather(*(worker(item) for item in chunk)))
    return results
