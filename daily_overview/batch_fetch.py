"""
Path: daily_overview/batch_fetch.py

Bounded-concurrency fetch pool.

A fixed number of workers consume a queue of fetch requests, so at most
`limit` requests are outstanding at any time. Every item yields its own
success or failure, so a single failed fetch never aborts the others.

Usage:
    outcomes = await run_bounded(courses, fetch_detail, limit=3)
    ok = [o.result for o in outcomes if o.ok]
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


@dataclass
class BatchOutcome(Generic[T, R]):
    """Result of fetching one item."""
    item: T
    result: Optional[R] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    items: Sequence[T],
    fetch: Callable[[T], Awaitable[R]],
    limit: int,
) -> List[BatchOutcome]:
    """
    Run fetch(item) for every item with at most `limit` in flight.

    Args:
        items: Items to fetch, outcomes are returned in the same order
        fetch: Coroutine function called once per item
        limit: Number of workers consuming the request queue (>= 1)

    Returns:
        List of BatchOutcome, one per item

    Raises:
        ValueError: If limit < 1
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    if not items:
        return []

    queue: "asyncio.Queue[Tuple[int, T]]" = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))

    outcomes: List[Optional[BatchOutcome]] = [None] * len(items)

    async def worker(worker_no: int) -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                outcomes[index] = BatchOutcome(item=item, result=await fetch(item))
            except Exception as e:
                logger.debug(f"Worker {worker_no}: fetch failed for item {index}: {e}")
                outcomes[index] = BatchOutcome(item=item, error=e)

    workers = [
        asyncio.ensure_future(worker(n))
        for n in range(1, min(limit, len(items)) + 1)
    ]
    try:
        await asyncio.gather(*workers)
    finally:
        # Cancellation and interpreter exits are not per-item failures
        for task in workers:
            if not task.done():
                task.cancel()

    failed = sum(1 for o in outcomes if not o.ok)
    logger.debug(f"Fetched {len(items)} items with {len(workers)} workers: {failed} failed")
    return outcomes
