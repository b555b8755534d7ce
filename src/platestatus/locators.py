# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Ordered locator chains for the lookup form and the results page.

Each step of the sequencer tries its candidates in rank order and commits
to the first one that resolves. Candidates share one capability,
``try_locate(page) -> ElementHandle | None``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)


@runtime_checkable
class LocatorStrategy(Protocol):
    """Something that can find one element on a page, or report absence."""

    name: str

    async def try_locate(self, page: Page) -> ElementHandle | None: ...


@dataclass(frozen=True, slots=True)
class CssLocator:
    """Playwright selector lookup (CSS, ``text=`` and ``:has-text()`` engines)."""

    selector: str

    @property
    def name(self) -> str:
        return self.selector

    async def try_locate(self, page: Page) -> ElementHandle | None:
        return await page.query_selector(self.selector)


async def first_match(
    page: Page, strategies: Sequence[LocatorStrategy]
) -> tuple[LocatorStrategy, ElementHandle] | None:
    """Return the first strategy that resolves and its element, in rank order."""
    for strategy in strategies:
        element = await strategy.try_locate(page)
        if element is not None:
            logger.debug("Locator matched: %s", strategy.name)
            return strategy, element
    return None


INPUT_LOCATORS: tuple[LocatorStrategy, ...] = (
    CssLocator('input[placeholder*="Patente" i]'),
    CssLocator('input[placeholder*="patent" i]'),
    CssLocator('input[name*="patent" i]'),
    CssLocator('input[id*="patent" i]'),
    CssLocator('input[type="text"]'),
)

BUTTON_LOCATORS: tuple[LocatorStrategy, ...] = (
    CssLocator('button:has-text("Buscar")'),
    CssLocator("text=Buscar"),
    CssLocator('input[type="submit"]'),
    CssLocator('button[type="submit"]'),
)

# "Results present" signals, most specific first. Waited on in order.
READY_SELECTORS: tuple[str, ...] = (
    ".ant-descriptions",
    ".el-descriptions",
    'text="Estado Sello"',
    "text=Estado Sello",
    ".resultado, .resultados, .card, .table",
)
