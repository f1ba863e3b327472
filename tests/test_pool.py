"""Tests for the fixed-size worker pool."""

from __future__ import annotations

import threading
import time

import pytest

from tasktrail_sync.pool import drain_queue


def test_collects_results_and_drops_none():
    results = drain_queue(range(10), lambda n: n * 2 if n % 2 else None, workers=3)
    assert sorted(results) == [2, 6, 10, 14, 18]


def test_empty_input():
    assert drain_queue([], lambda n: n, workers=4) == []


def test_worker_count_bounded():
    active = 0
    peak = 0
    lock = threading.Lock()

    def handler(n):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1
        return n

    assert sorted(drain_queue(range(12), handler, workers=3)) == list(range(12))
    assert peak <= 3


def test_handler_exception_propagates():
    def handler(n):
        if n == 2:
            raise RuntimeError("boom")
        return n

    with pytest.raises(RuntimeError):
        drain_queue(range(4), handler, workers=1)
