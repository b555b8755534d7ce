# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for BrowserPool: lazy launch, workspaces and usage-based recycling.

All tests mock Playwright/Browser to avoid launching a real browser.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from platestatus.browser_pool import BrowserPool, PoolHealth, PoolState
from platestatus.browser_session import BrowserConfig, Workspace
from platestatus.errors import UnexpectedAutomationError

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _mock_browser():
    browser = AsyncMock()
    browser.is_connected = MagicMock(return_value=True)
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def mock_pw():
    """Patch async_playwright; every launch returns a fresh mock browser."""
    pw = AsyncMock()
    browsers: list[AsyncMock] = []

    async def _launch(**kwargs):
        b = _mock_browser()
        browsers.append(b)
        return b

    pw.chromium.launch = AsyncMock(side_effect=_launch)
    pw.stop = AsyncMock()
    with patch("platestatus.browser_pool.async_playwright") as mock_apw:
        mock_apw.return_value.start = AsyncMock(return_value=pw)
        yield pw, browsers


async def _complete_task(pool: BrowserPool):
    session = await pool.acquire_session()
    await pool.recycle_if_due()
    return session


# ---------------------------------------------------------------------------
# Lazy launch
# ---------------------------------------------------------------------------


class TestLazyLaunch:
    async def test_no_launch_before_first_acquire(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool() as pool:
            assert pool.state is PoolState.UNINITIALIZED
            assert browsers == []

    async def test_first_acquire_launches(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool() as pool:
            session = await pool.acquire_session()
            assert len(browsers) == 1
            assert session.generation == 1
            assert pool.state is PoolState.LIVE

    async def test_launch_flags_for_containers(self, mock_pw):
        pw, _ = mock_pw
        async with BrowserPool(config=BrowserConfig(headless=True)) as pool:
            await pool.acquire_session()
        kwargs = pw.chromium.launch.call_args.kwargs
        assert kwargs["headless"] is True
        assert "--no-sandbox" in kwargs["args"]
        assert "--disable-setuid-sandbox" in kwargs["args"]

    async def test_acquire_reuses_live_browser(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool() as pool:
            s1 = await pool.acquire_session()
            s2 = await pool.acquire_session()
            assert s1.generation == s2.generation
            assert len(browsers) == 1

    async def test_concurrent_acquire_launches_once(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool() as pool:
            sessions = await asyncio.gather(*(pool.acquire_session() for _ in range(5)))
            assert len(browsers) == 1
            assert {s.generation for s in sessions} == {1}

    async def test_disconnected_browser_is_relaunched(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool() as pool:
            await _complete_task(pool)
            browsers[0].is_connected.return_value = False
            session = await pool.acquire_session()
            assert session.generation == 2
            assert len(browsers) == 2

    async def test_launch_failure_is_typed(self, mock_pw):
        pw, _ = mock_pw
        pw.chromium.launch = AsyncMock(side_effect=RuntimeError("boom"))
        async with BrowserPool() as pool:
            with pytest.raises(UnexpectedAutomationError) as exc_info:
                await pool.acquire_session()
            assert exc_info.value.step == "launch"
            assert pool.state is PoolState.UNINITIALIZED

    async def test_missing_executable_triggers_auto_install(self, mock_pw):
        pw, _ = mock_pw
        browser = _mock_browser()
        pw.chromium.launch = AsyncMock(side_effect=[Exception("Executable doesn't exist at /x"), browser])
        with patch("platestatus.browser_pool._auto_install_chromium", AsyncMock(return_value=True)) as install:
            async with BrowserPool() as pool:
                session = await pool.acquire_session()
        install.assert_awaited_once()
        assert session.generation == 1


# ---------------------------------------------------------------------------
# Recycling
# ---------------------------------------------------------------------------


class TestRecycle:
    async def test_session_identity_changes_after_budget(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool(restart_every=3) as pool:
            generations = [(await _complete_task(pool)).generation for _ in range(3)]
            assert generations == [1, 1, 1]
            assert pool.state is PoolState.UNINITIALIZED
            browsers[0].close.assert_awaited_once()

            nxt = await pool.acquire_session()
            assert nxt.generation == 2
            assert len(browsers) == 2

    async def test_recycle_reports_close(self, mock_pw):
        async with BrowserPool(restart_every=2) as pool:
            await pool.acquire_session()
            assert await pool.recycle_if_due() is False
            await pool.acquire_session()
            assert await pool.recycle_if_due() is True

    async def test_counter_resets_after_recycle(self, mock_pw):
        async with BrowserPool(restart_every=2) as pool:
            for _ in range(2):
                await _complete_task(pool)
            assert pool.health().uses == 0
            await _complete_task(pool)
            assert pool.health().uses == 1

    async def test_close_failure_is_swallowed(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool(restart_every=1) as pool:
            await pool.acquire_session()
            browsers[0].close.side_effect = RuntimeError("already dead")
            assert await pool.recycle_if_due() is True
            assert pool.state is PoolState.UNINITIALIZED

    async def test_drains_in_flight_tasks_before_close(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool(restart_every=1) as pool:
            await pool.acquire_session()
            await pool.acquire_session()  # second task overlaps

            assert await pool.recycle_if_due() is False
            assert pool.state is PoolState.DRAINING
            browsers[0].close.assert_not_awaited()

            waiter = asyncio.ensure_future(pool.acquire_session())
            await asyncio.sleep(0.01)
            assert not waiter.done()

            assert await pool.recycle_if_due() is True
            session = await asyncio.wait_for(waiter, timeout=1)
            assert session.generation == 2
            assert len(browsers) == 2

    def test_rejects_zero_budget(self):
        with pytest.raises(ValueError):
            BrowserPool(restart_every=0)


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------


class TestWorkspaces:
    async def test_new_workspace_uses_session_browser(self, mock_pw):
        pw, browsers = mock_pw
        with patch("platestatus.browser_pool.open_workspace", AsyncMock(return_value="ws")) as opener:
            async with BrowserPool() as pool:
                session = await pool.acquire_session()
                assert await pool.new_workspace(session) == "ws"
        assert opener.call_args.args[0] is browsers[0]

    async def test_release_workspace_never_raises(self, mock_pw):
        page = AsyncMock()
        page.close.side_effect = RuntimeError("page gone")
        context = AsyncMock()
        context.close.side_effect = RuntimeError("context gone")
        async with BrowserPool() as pool:
            await pool.release_workspace(Workspace(context=context, page=page))
        page.close.assert_awaited_once()
        context.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# Health + shutdown
# ---------------------------------------------------------------------------


class TestHealthAndShutdown:
    async def test_health_snapshot(self, mock_pw):
        async with BrowserPool(restart_every=10) as pool:
            h = pool.health()
            assert isinstance(h, PoolHealth)
            assert h.browser_connected is False
            await _complete_task(pool)
            h = pool.health()
            assert h.state is PoolState.LIVE
            assert h.generation == 1
            assert h.uses == 1
            assert h.in_flight == 0
            assert h.browser_connected is True

    async def test_shutdown_closes_browser_and_playwright(self, mock_pw):
        pw, browsers = mock_pw
        async with BrowserPool() as pool:
            await pool.acquire_session()
        browsers[0].close.assert_awaited_once()
        pw.stop.assert_awaited_once()
        assert pool.state is PoolState.UNINITIALIZED
