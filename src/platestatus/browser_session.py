# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Browser configuration, launch flags and per-task workspaces.

A workspace is one isolated BrowserContext plus one Page, created for a
single lookup and discarded afterwards. Heavy resource types are aborted
at the context level; documents, scripts, stylesheets and XHR/fetch always
pass because the results page depends on them.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import suppress
from dataclasses import dataclass

from playwright.async_api import Browser, BrowserContext, Page, Route

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/118.0.0.0 Safari/537.36"
)

# Aborted at the context level. Never add document/script/stylesheet/xhr/fetch.
BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font"})


@dataclass
class BrowserConfig:
    """Browser launch and workspace configuration."""

    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "es-CL"


@dataclass(slots=True)
class Workspace:
    """An isolated context and its single page."""

    context: BrowserContext
    page: Page


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    """Return Chromium flags for constrained container environments."""
    return [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--no-zygote",
        "--disable-extensions",
        "--disable-background-networking",
        "--disable-sync",
        "--no-first-run",
        "--disable-breakpad",
        "--disable-component-update",
        f"--lang={config.locale}",
    ]


# ── Chromium auto-install ─────────────────────────────────────────

_chromium_install_attempted = False
_AUTO_INSTALL_TIMEOUT = 300  # seconds, Chromium is a ~140MB download


async def _auto_install_chromium() -> bool:
    """Run ``playwright install chromium`` once per process.

    Returns True if install succeeded, False otherwise.
    """
    global _chromium_install_attempted  # noqa: PLW0603
    if _chromium_install_attempted:
        return False
    _chromium_install_attempted = True

    logger.info("Chromium not found, running 'playwright install chromium' …")
    try:
        proc = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "playwright",
            "install",
            "chromium",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=_AUTO_INSTALL_TIMEOUT)
        if proc.returncode == 0:
            logger.info("Chromium installed successfully")
            return True
        logger.warning(
            "playwright install chromium failed (rc=%d): %s",
            proc.returncode,
            stderr.decode(errors="replace")[:500],
        )
        return False
    except TimeoutError:
        logger.warning("Chromium install timed out after %ds", _AUTO_INSTALL_TIMEOUT)
        return False
    except Exception:
        logger.warning("Chromium auto-install failed", exc_info=True)
        return False


# ── Workspaces ────────────────────────────────────────────────────


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
        return
    await route.continue_()


async def open_workspace(browser: Browser, config: BrowserConfig) -> Workspace:
    """Create an isolated context with resource blocking and one page."""
    context = await browser.new_context(
        user_agent=config.user_agent,
        viewport={"width": config.viewport_width, "height": config.viewport_height},
        locale=config.locale,
        accept_downloads=False,
    )
    try:
        await context.route("**/*", _block_heavy_resources)
        page = await context.new_page()
    except Exception:
        with suppress(Exception):
            await context.close()
        raise
    return Workspace(context=context, page=page)


async def close_workspace(workspace: Workspace) -> None:
    """Close page then context. Best-effort: failures are logged, never raised."""
    try:
        await workspace.page.close()
    except Exception:
        logger.debug("Workspace page close failed", exc_info=True)
    try:
        await workspace.context.close()
    except Exception:
        logger.debug("Workspace context close failed", exc_info=True)
