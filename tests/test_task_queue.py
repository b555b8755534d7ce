# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for TaskQueue: FIFO dispatch under a concurrency bound."""

from __future__ import annotations

import asyncio

import pytest

from platestatus.task_queue import TaskQueue


async def _settle(rounds: int = 5) -> None:
    """Let queued callbacks and freshly created tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class _Probe:
    """Records start order and peak concurrency of submitted tasks."""

    def __init__(self) -> None:
        self.started: list[int] = []
        self.running = 0
        self.peak = 0

    def task(self, n: int, delay: float = 0.01, fail: bool = False):
        async def _run():
            self.started.append(n)
            self.running += 1
            self.peak = max(self.peak, self.running)
            try:
                await asyncio.sleep(delay)
                if fail:
                    raise ValueError(f"task {n} failed")
                return n
            finally:
                self.running -= 1

        return _run


class TestConstruction:
    def test_default_bound_is_one(self):
        assert TaskQueue().max_concurrency == 1

    def test_rejects_zero(self):
        with pytest.raises(ValueError):
            TaskQueue(max_concurrency=0)


class TestSubmit:
    async def test_returns_task_result(self):
        queue = TaskQueue()

        async def _work():
            return {"Patente": "AB12CD"}

        assert await queue.submit(_work) == {"Patente": "AB12CD"}

    async def test_propagates_task_exception(self):
        queue = TaskQueue()
        probe = _Probe()
        with pytest.raises(ValueError, match="task 1 failed"):
            await queue.submit(probe.task(1, fail=True))

    async def test_counters_reset_after_completion(self):
        queue = TaskQueue(max_concurrency=2)
        probe = _Probe()
        await asyncio.gather(*(queue.submit(probe.task(i)) for i in range(5)))
        assert queue.active == 0
        assert queue.pending == 0

    async def test_factory_not_called_while_queued(self):
        queue = TaskQueue(max_concurrency=1)
        gate = asyncio.Event()
        calls: list[str] = []

        async def _blocker():
            calls.append("blocker")
            await gate.wait()

        async def _second():
            calls.append("second")

        first = asyncio.ensure_future(queue.submit(_blocker))
        second = asyncio.ensure_future(queue.submit(_second))
        await _settle()
        assert calls == ["blocker"]
        assert queue.pending == 1
        gate.set()
        await asyncio.gather(first, second)
        assert calls == ["blocker", "second"]


class TestOrderingAndBound:
    async def test_fifo_start_order(self):
        queue = TaskQueue(max_concurrency=1)
        probe = _Probe()
        results = await asyncio.gather(*(queue.submit(probe.task(i)) for i in range(6)))
        assert probe.started == list(range(6))
        assert results == list(range(6))

    @pytest.mark.parametrize("bound", [1, 2, 3])
    async def test_never_exceeds_bound(self, bound):
        queue = TaskQueue(max_concurrency=bound)
        probe = _Probe()
        await asyncio.gather(*(queue.submit(probe.task(i)) for i in range(bound * 3 + 1)))
        assert probe.peak == bound
        assert len(probe.started) == bound * 3 + 1

    async def test_failure_does_not_block_siblings(self):
        queue = TaskQueue(max_concurrency=1)
        probe = _Probe()
        results = await asyncio.gather(
            queue.submit(probe.task(0)),
            queue.submit(probe.task(1, fail=True)),
            queue.submit(probe.task(2)),
            return_exceptions=True,
        )
        assert results[0] == 0
        assert isinstance(results[1], ValueError)
        assert results[2] == 2
        assert probe.started == [0, 1, 2]


class TestCancellation:
    async def test_cancelled_waiter_while_queued_is_skipped(self):
        queue = TaskQueue(max_concurrency=1)
        gate = asyncio.Event()
        ran: list[str] = []

        async def _blocker():
            await gate.wait()
            ran.append("blocker")

        async def _skipped():
            ran.append("skipped")

        async def _last():
            ran.append("last")

        first = asyncio.ensure_future(queue.submit(_blocker))
        second = asyncio.ensure_future(queue.submit(_skipped))
        third = asyncio.ensure_future(queue.submit(_last))
        await _settle()
        second.cancel()
        await _settle()
        gate.set()
        await asyncio.gather(first, third)
        assert ran == ["blocker", "last"]

    async def test_cancelled_waiter_does_not_interrupt_running_task(self):
        queue = TaskQueue(max_concurrency=1)
        finished = asyncio.Event()

        async def _work():
            await asyncio.sleep(0.01)
            finished.set()
            return "done"

        waiter = asyncio.ensure_future(queue.submit(_work))
        await _settle()
        waiter.cancel()
        await asyncio.wait_for(finished.wait(), timeout=1)
        await asyncio.sleep(0)
        assert queue.active == 0
