# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import platestatus  # noqa: F401
except ImportError:
    raise ImportError("platestatus is not installed. Run: pip install -e '.[dev]'") from None

import pytest


@pytest.fixture(autouse=True)
def _block_real_browser(request, monkeypatch):
    """Safety net: prevent real Chromium launches in unit tests.

    Tests that need a browser must patch ``platestatus.browser_pool.async_playwright``
    (that patch takes priority over this fixture) or inject a mock pool.
    """
    if "allow_real_browser" in request.keywords:
        return

    def _no_real_playwright():
        raise RuntimeError(
            "Test tried to start a real Playwright instance. Patch 'platestatus.browser_pool.async_playwright'."
        )

    monkeypatch.setattr("platestatus.browser_pool.async_playwright", _no_real_playwright)


def pytest_configure(config):
    config.addinivalue_line("markers", "allow_real_browser: test may launch a real browser")
