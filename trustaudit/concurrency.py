"""Bounded batch worker pool with an optional overall deadline."""

from __future__ import annotations

import concurrent.futures
import logging
import time
from collections.abc import Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_batches(
    items: Sequence[T],
    worker: Callable[[T], R],
    *,
    concurrency: int = 5,
    deadline: float | None = None,
    on_timeout: Callable[[T], R] | None = None,
    on_error: Callable[[T, Exception], R] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[R]:
    """Run ``worker`` over ``items`` in sequential batches of ``concurrency``.

    Results are aligned with ``items``. When ``deadline`` seconds elapse, the
    unfinished items of the current batch and every item of later batches are
    resolved through ``on_timeout``; finished work is kept. A worker exception
    is resolved through ``on_error`` when given and re-raised otherwise.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    if deadline is not None and on_timeout is None:
        raise ValueError("on_timeout is required when a deadline is set")

    results: list[R | None] = [None] * len(items)
    started = clock()
    pool = concurrent.futures.ThreadPoolExecutor(max_workers=concurrency)
    try:
        for offset in range(0, len(items), concurrency):
            remaining = None if deadline is None else deadline - (clock() - started)
            if remaining is not None and remaining <= 0:
                logger.warning("Deadline reached; %d items not started", len(items) - offset)
                for index in range(offset, len(items)):
                    results[index] = on_timeout(items[index])  # type: ignore[misc]
                break

            futures = {
                pool.submit(worker, item): offset + position
                for position, item in enumerate(items[offset : offset + concurrency])
            }
            done, pending = concurrent.futures.wait(futures, timeout=remaining)
            for future in done:
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as exc:
                    if on_error is None:
                        raise
                    results[index] = on_error(items[index], exc)
            for future in pending:
                future.cancel()
                index = futures[future]
                results[index] = on_timeout(items[index])  # type: ignore[misc]
            if pending:
                logger.warning("Deadline reached with %d items in flight", len(pending))
                for index in range(offset + concurrency, len(items)):
                    results[index] = on_timeout(items[index])  # type: ignore[misc]
                break
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    return results  # type: ignore[return-value]
