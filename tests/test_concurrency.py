"""
tests/test_concurrency.py

Bounded batch worker pool: ordering, batch size, deadline and error routing.
"""

from __future__ import annotations

import threading

import pytest

from trustaudit.concurrency import run_batches


class TestRunBatches:
    def test_results_aligned_with_items(self) -> None:
        assert run_batches(list(range(7)), lambda item: item * 2, concurrency=3) == [0, 2, 4, 6, 8, 10, 12]

    def test_empty_input(self) -> None:
        assert run_batches([], lambda item: item) == []

    def test_never_exceeds_concurrency(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0

        def worker(item: int) -> int:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            threading.Event().wait(0.01)
            with lock:
                active -= 1
            return item

        run_batches(list(range(10)), worker, concurrency=2)
        assert peak <= 2

    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError):
            run_batches([1], lambda item: item, concurrency=0)

    def test_deadline_requires_timeout_handler(self) -> None:
        with pytest.raises(ValueError):
            run_batches([1], lambda item: item, deadline=1.0)

    def test_worker_error_routed(self) -> None:
        def worker(item: int) -> int:
            if item == 2:
                raise RuntimeError("boom")
            return item

        results = run_batches([1, 2, 3], worker, on_error=lambda item, exc: f"error:{item}:{exc}")
        assert results == [1, "error:2:boom", 3]

    def test_worker_error_raises_without_handler(self) -> None:
        def worker(item: int) -> int:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run_batches([1], worker)


class TestDeadline:
    def test_in_flight_and_unstarted_items_time_out(self) -> None:
        release = threading.Event()

        def worker(item: int) -> int:
            if item == 1:
                release.wait(5)
            return item

        try:
            results = run_batches(
                [0, 1, 2, 3],
                worker,
                concurrency=2,
                deadline=0.2,
                on_timeout=lambda item: "timeout",
            )
        finally:
            release.set()
        assert results == [0, "timeout", "timeout", "timeout"]

    def test_deadline_between_batches(self) -> None:
        ticks = iter([0.0, 0.0, 5.0, 5.0, 5.0])
        results = run_batches(
            [0, 1, 2, 3],
            lambda item: item,
            concurrency=2,
            deadline=1.0,
            on_timeout=lambda item: "timeout",
            clock=lambda: next(ticks),
        )
        assert results == [0, 1, "timeout", "timeout"]

    def test_generous_deadline_keeps_everything(self) -> None:
        results = run_batches([0, 1, 2], lambda item: item, concurrency=2, deadline=30, on_timeout=lambda item: None)
        assert results == [0, 1, 2]
