# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fixed-order reducer over the extraction strategies.

Precedence is the order of ``TEXT_STRATEGIES``: a later overwriting
strategy replaces values of an earlier one for the same label (a bordered
descriptions component is also a table, so ``tabular`` wins there).
``free_text`` is fill-only and runs last. The visual scan only ever adds
alerts. Subtrees the style scan reported as unrendered are dropped before
any strategy runs.

Dict insertion order and document-order XPath keep repeated runs over the
same page byte-identical.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import lxml.html
from lxml import etree
from playwright.async_api import Page

from .. import Extraction
from .strategies import definition_list, free_text, label_adjacent, structured_component, tabular
from .visual import STYLE_SCAN_JS, ElementStyle, drop_hidden, styles_from_scan, visual_alerts

logger = logging.getLogger(__name__)

_EMPTY_DOCUMENT = "<html><body></body></html>"


@dataclass(frozen=True, slots=True)
class Strategy:
    name: str
    extract: Callable[[lxml.html.HtmlElement], Extraction]
    fill_only: bool = False


TEXT_STRATEGIES: tuple[Strategy, ...] = (
    Strategy("structured_component", structured_component),
    Strategy("tabular", tabular),
    Strategy("definition_list", definition_list),
    Strategy("label_adjacent", label_adjacent),
    Strategy("free_text", free_text, fill_only=True),
)


def parse_html(html: str) -> lxml.html.HtmlElement:
    """Parse a full document; empty or unparsable input yields an empty body."""
    if not html or not html.strip():
        return lxml.html.document_fromstring(_EMPTY_DOCUMENT)
    try:
        return lxml.html.document_fromstring(html)
    except (etree.ParserError, ValueError):
        logger.warning("Results page could not be parsed, treating as empty")
        return lxml.html.document_fromstring(_EMPTY_DOCUMENT)


def merge(merged: Extraction, partial: Extraction, *, fill_only: bool = False) -> None:
    """Fold *partial* into *merged* with overwrite (or fill-only) semantics."""
    if not fill_only:
        merged.fields.update(partial.fields)
        for label in partial.alerts:
            merged.add_alert(label)
        return
    filled = set()
    for label, value in partial.fields.items():
        if label not in merged.fields:
            merged.fields[label] = value
            filled.add(label)
    for label in partial.alerts:
        if label in filled:
            merged.add_alert(label)


def run_strategies(
    doc: lxml.html.HtmlElement,
    styles: Mapping[int, ElementStyle] | None = None,
    strategies: tuple[Strategy, ...] = TEXT_STRATEGIES,
) -> Extraction:
    """Run every strategy over *doc* and reduce them into one Extraction."""
    dropped = drop_hidden(doc, styles)
    if dropped:
        logger.debug("Dropped %d hidden subtrees", dropped)
    merged = Extraction()
    for strategy in strategies:
        partial = strategy.extract(doc)
        logger.debug("Strategy %s: %d fields, %d alerts", strategy.name, len(partial.fields), len(partial.alerts))
        merge(merged, partial, fill_only=strategy.fill_only)
    for label in visual_alerts(doc, styles).alerts:
        merged.add_alert(label)
    return merged


def extract_html(html: str, styles: Mapping[int, ElementStyle] | None = None) -> Extraction:
    return run_strategies(parse_html(html), styles)


async def snapshot_page(page: Page) -> tuple[str, dict[int, ElementStyle]]:
    """Tag elements with their computed colors, then serialize the DOM."""
    rows = await page.evaluate(STYLE_SCAN_JS)
    html = await page.content()
    return html, styles_from_scan(rows)


async def extract_page(page: Page) -> Extraction:
    """Extract fields and alerts from the live results page."""
    html, styles = await snapshot_page(page)
    return extract_html(html, styles)
