# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""BrowserPool: one shared, periodically recycled Chromium process.

A single browser hosts a short-lived isolated Workspace per task. The
browser is launched lazily on first use and hard-restarted after
``restart_every`` completed tasks to bound memory growth in long-lived
automation processes.

Lifecycle::

    UNINITIALIZED --acquire_session--> LIVE --restart due--> DRAINING
          ^                                                     |
          +------------- last in-flight task completes ---------+

Per-task usage::

    async with BrowserPool(restart_every=50) as pool:
        session = await pool.acquire_session()
        try:
            workspace = await pool.new_workspace(session)
            try:
                ...
            finally:
                await pool.release_workspace(workspace)
        finally:
            await pool.recycle_if_due()

Every ``acquire_session`` must be paired with exactly one
``recycle_if_due``; the pair brackets an in-flight task. The raw Browser
never leaves this module except inside the opaque ``Session`` handle.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from enum import StrEnum
from types import TracebackType

from playwright.async_api import Browser, Playwright, async_playwright

from .browser_session import (
    BrowserConfig,
    Workspace,
    _auto_install_chromium,
    chromium_launch_args,
    close_workspace,
    open_workspace,
)
from .errors import UnexpectedAutomationError

logger = logging.getLogger(__name__)

_DEFAULT_RESTART_EVERY = 50


class PoolState(StrEnum):
    UNINITIALIZED = "uninitialized"
    LIVE = "live"
    DRAINING = "draining"


@dataclass(frozen=True, slots=True)
class PoolHealth:
    """Immutable snapshot of pool state for monitoring."""

    state: PoolState
    generation: int
    uses: int
    restart_every: int
    in_flight: int
    browser_connected: bool


@dataclass(frozen=True, slots=True)
class Session:
    """Opaque handle to the shared browser at a given launch generation."""

    generation: int
    _browser: Browser = field(repr=False, compare=False)


class BrowserPool:
    """Owner of the shared browser handle, its usage counter and lifecycle."""

    def __init__(
        self,
        *,
        restart_every: int = _DEFAULT_RESTART_EVERY,
        config: BrowserConfig | None = None,
    ) -> None:
        if restart_every < 1:
            raise ValueError("restart_every must be >= 1")
        self._restart_every = restart_every
        self._config = config or BrowserConfig()

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._state = PoolState.UNINITIALIZED
        self._generation = 0
        self._uses = 0
        self._in_flight = 0
        # Guards launch, recycle and the counters.
        self._cond = asyncio.Condition()

    # ── AsyncContextManager ──────────────────────────────────────────

    async def __aenter__(self) -> BrowserPool:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    # ── Session lifecycle ────────────────────────────────────────────

    async def acquire_session(self) -> Session:
        """Return the live browser, launching it first if needed.

        Waits while a recycle is draining so that at most one browser
        process is ever live.
        """
        async with self._cond:
            await self._cond.wait_for(lambda: self._state is not PoolState.DRAINING)
            if self._browser is not None and not self._browser.is_connected():
                logger.warning("Shared browser disconnected (generation=%d), relaunching", self._generation)
                await self._close_browser()
            if self._browser is None:
                await self._launch()
            self._in_flight += 1
            return Session(generation=self._generation, _browser=self._browser)

    async def new_workspace(self, session: Session) -> Workspace:
        """Create an isolated context + page on *session*'s browser."""
        return await open_workspace(session._browser, self._config)

    async def release_workspace(self, workspace: Workspace) -> None:
        """Close page then context; never raises."""
        await close_workspace(workspace)

    async def recycle_if_due(self) -> bool:
        """Mark one task completed; restart the browser once the budget is spent.

        Returns True when this call closed the browser.
        """
        async with self._cond:
            self._in_flight = max(0, self._in_flight - 1)
            self._uses += 1
            if self._state is PoolState.LIVE and self._uses >= self._restart_every:
                self._state = PoolState.DRAINING
                logger.info(
                    "Browser restart due after %d tasks (generation=%d, in_flight=%d)",
                    self._uses,
                    self._generation,
                    self._in_flight,
                )
            if self._state is not PoolState.DRAINING or self._in_flight > 0:
                return False
            await self._close_browser()
            self._uses = 0
            self._cond.notify_all()
            return True

    # ── Monitoring ───────────────────────────────────────────────────

    def health(self) -> PoolHealth:
        """Return a snapshot of pool health."""
        connected = self._browser is not None and self._browser.is_connected()
        return PoolHealth(
            state=self._state,
            generation=self._generation,
            uses=self._uses,
            restart_every=self._restart_every,
            in_flight=self._in_flight,
            browser_connected=connected,
        )

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    # ── Internal ─────────────────────────────────────────────────────

    async def _launch(self) -> None:
        """Start Playwright if needed and launch Chromium. Caller holds the lock."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        args = chromium_launch_args(self._config)
        try:
            self._browser = await self._playwright.chromium.launch(headless=self._config.headless, args=args)
        except Exception as exc:
            if "executable doesn't exist" not in str(exc).lower():
                raise UnexpectedAutomationError(f"Browser launch failed: {exc}", step="launch") from exc
            if not await _auto_install_chromium():
                raise UnexpectedAutomationError(
                    "Chromium is not installed and auto-install failed. Please run: playwright install chromium",
                    step="launch",
                ) from exc
            self._browser = await self._playwright.chromium.launch(headless=self._config.headless, args=args)
        self._generation += 1
        self._uses = 0
        self._state = PoolState.LIVE
        logger.info("Shared browser launched (generation=%d, headless=%s)", self._generation, self._config.headless)

    async def _close_browser(self) -> None:
        """Close the browser best-effort and reset the handle. Caller holds the lock."""
        if self._browser is not None:
            with suppress(Exception):
                await self._browser.close()
            logger.info("Shared browser closed (generation=%d)", self._generation)
        self._browser = None
        self._state = PoolState.UNINITIALIZED

    # ── Shutdown ─────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Close browser and playwright."""
        async with self._cond:
            await self._close_browser()
            if self._playwright is not None:
                with suppress(Exception):
                    await self._playwright.stop()
                self._playwright = None
            self._uses = 0
            self._in_flight = 0
            self._cond.notify_all()
        logger.info("BrowserPool shut down")
