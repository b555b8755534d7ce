# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Lookup sequencer: load → locate_input → submit → await_result.

Steps 1-3 are fatal on failure and raise a typed AutomationError.
``await_result`` is a soft condition: when no ready signal appears the
page is given a short settle period and extraction proceeds anyway.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import ButtonNotFoundError, InputNotFoundError, NavigationTimeoutError
from .locators import BUTTON_LOCATORS, INPUT_LOCATORS, READY_SELECTORS, first_match
from .step_timer import StepTimer

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 30_000
READY_TIMEOUT_MS = 15_000
NETWORK_IDLE_TIMEOUT_MS = 5_000
SETTLE_PAUSE_MS = 3_000


async def load(page: Page, url: str) -> None:
    """Navigate until the DOM is parsed (not full resource load)."""
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)
    except PlaywrightTimeoutError as exc:
        raise NavigationTimeoutError(
            f"Navigation to {url} exceeded {NAVIGATION_TIMEOUT_MS // 1000}s", step="load"
        ) from exc


async def fill_identifier(page: Page, identifier: str) -> None:
    match = await first_match(page, INPUT_LOCATORS)
    if match is None:
        raise InputNotFoundError("No se encontró el input de patente", step="locate_input")
    _strategy, element = match
    await element.fill(identifier)


async def submit(page: Page) -> None:
    match = await first_match(page, BUTTON_LOCATORS)
    if match is None:
        raise ButtonNotFoundError("No se encontró el botón Buscar", step="submit")
    _strategy, element = match
    await element.click()


async def await_result(page: Page) -> str | None:
    """Wait for each ready selector in rank order; return the first that appears.

    Each candidate gets its own timeout, so a generic signal only counts once
    every more specific one has timed out. Never raises for a missing signal.
    """
    for selector in READY_SELECTORS:
        try:
            await page.wait_for_selector(selector, timeout=READY_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            continue
        logger.debug("Ready signal matched: %s", selector)
        return selector

    logger.info("No ready signal matched, settling before extraction")
    with suppress(PlaywrightError):
        await page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
    await page.wait_for_timeout(SETTLE_PAUSE_MS)
    return None


async def run_lookup(page: Page, url: str, identifier: str, timer: StepTimer | None = None) -> str | None:
    """Drive one lookup up to a results page ready for extraction.

    Returns the ready selector that matched, or None for a degraded settle.
    """
    timer = timer or StepTimer()
    timer.step("load")
    await load(page, url)
    timer.step("locate_input")
    await fill_identifier(page, identifier)
    timer.step("submit")
    await submit(page)
    timer.step("await_result")
    return await await_result(page)
