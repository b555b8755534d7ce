# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Multi-strategy extraction of fields and alerts from a results page.

Public API:
- extract_page(page) → Extraction    (live Playwright page)
- extract_html(html, styles) → Extraction    (serialized snapshot)
"""

from .pipeline import TEXT_STRATEGIES, Strategy, extract_html, extract_page, merge, parse_html, run_strategies
from .visual import ElementStyle

__all__ = [
    "TEXT_STRATEGIES",
    "ElementStyle",
    "Strategy",
    "extract_html",
    "extract_page",
    "merge",
    "parse_html",
    "run_strategies",
]
