"""Bounded worker pool that preserves result positions."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class BoundedDispatcher:
    """Runs a worker over items with at most ``concurrency`` in flight.

    Workers claim the next unclaimed index from a shared cursor, so items are
    started in order; each result is stored at its item's index. Once the
    caller is interrupted, or a worker raises, no further items are claimed;
    items already in flight finish before the error propagates.
    """

    def __init__(self, concurrency: int) -> None:
        self.concurrency = max(1, concurrency)

    def worker_count(self, item_count: int) -> int:
        return max(1, min(self.concurrency, item_count))

    def map(
        self,
        items: Sequence[ItemT],
        worker: Callable[[ItemT, int], ResultT],
    ) -> List[ResultT]:
        if not items:
            return []

        results: List[ResultT] = [None] * len(items)  # type: ignore[list-item]
        cursor = 0
        cursor_lock = threading.Lock()
        stop = threading.Event()

        def claim() -> int:
            nonlocal cursor
            with cursor_lock:
                if stop.is_set():
                    return len(items)
                index = cursor
                cursor += 1
                return index

        def run() -> None:
            while True:
                index = claim()
                if index >= len(items):
                    return
                try:
                    results[index] = worker(items[index], index)
                except BaseException:
                    stop.set()
                    raise

        worker_count = self.worker_count(len(items))
        with ThreadPoolExecutor(
            max_workers=worker_count, thread_name_prefix="interleaf-batch"
        ) as executor:
            futures = [executor.submit(run) for _ in range(worker_count)]
            try:
                for future in futures:
                    future.result()
            except BaseException:
                stop.set()
                raise

        return results
