"""Fixed-size worker pool over a shared queue.

Every git-bound stage (indexing, hydration, batched branch scans) follows the
same shape: a known list of work items, a bounded number of workers pulling
from one queue, and results gathered into a shared list. ``drain_queue``
is that shape, made explicit.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def drain_queue(
    items: Iterable[T],
    handler: Callable[[T], Optional[R]],
    *,
    workers: int,
    name: str = "tasktrail",
) -> List[R]:
    """Run ``handler`` over ``items`` with at most ``workers`` threads.

    Each worker pulls the next item from the queue until it is empty. A
    handler returning None contributes nothing; any other value is appended
    to the result list under a lock. Handlers are expected to deal with their
    own failures: an exception escaping a handler propagates to the caller
    once all workers have stopped. Result order is not significant.
    """
    work: "queue.Queue[T]" = queue.Queue()
    count = 0
    for item in items:
        work.put(item)
        count += 1

    results: List[R] = []
    if count == 0:
        return results

    lock = threading.Lock()

    def _worker() -> None:
        while True:
            try:
                item = work.get_nowait()
            except queue.Empty:
                return
            result = handler(item)
            if result is not None:
                with lock:
                    results.append(result)

    size = max(1, min(workers, count))
    with ThreadPoolExecutor(max_workers=size, thread_name_prefix=name) as executor:
        futures = [executor.submit(_worker) for _ in range(size)]
        for future in futures:
            future.result()
    return results
