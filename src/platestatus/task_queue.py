# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""TaskQueue: FIFO admission of automation tasks with a concurrency bound.

An unbounded deque of pending work items plus an ``active`` counter,
driven by a single dispatch routine::

    queue = TaskQueue(max_concurrency=1)
    record = await queue.submit(lambda: run_lookup(page, "AB12CD"))

Tasks start in submission order. Each submitter's future settles with its
own task's result or exception; a failing task never affects siblings.
No depth limit or timeout is applied here; callers enforce deadlines.

Not thread-safe: all calls must come from the owning event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class _WorkItem:
    factory: TaskFactory
    future: asyncio.Future


class TaskQueue:
    """FIFO queue bounded by ``max_concurrency`` simultaneously active tasks."""

    def __init__(self, max_concurrency: int = 1) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._max_concurrency = max_concurrency
        self._pending: deque[_WorkItem] = deque()
        self._active = 0
        self._running: set[asyncio.Task] = set()

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def active(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def submit(self, factory: TaskFactory) -> Any:
        """Enqueue *factory* and wait for its result.

        *factory* is called only once the task is dispatched, so no work
        (and no coroutine object) exists while the item is still queued.
        """
        future = asyncio.get_running_loop().create_future()
        self._pending.append(_WorkItem(factory, future))
        logger.debug("Task queued (active=%d, pending=%d)", self._active, len(self._pending))
        self._dispatch()
        return await future

    def _dispatch(self) -> None:
        while self._active < self._max_concurrency and self._pending:
            item = self._pending.popleft()
            if item.future.cancelled():
                # Submitter gave up while queued; nothing has started yet.
                continue
            self._active += 1
            task = asyncio.get_running_loop().create_task(self._run(item))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _run(self, item: _WorkItem) -> None:
        try:
            result = await item.factory()
        except asyncio.CancelledError:
            item.future.cancel()
            raise
        except Exception as exc:
            if not item.future.done():
                item.future.set_exception(exc)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._active -= 1
            self._dispatch()
