# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Visual alert detection: red text/backgrounds and status dots.

Computed styles only exist in the live page, so the scan runs in three steps:

1. ``STYLE_SCAN_JS`` tags every body element with ``data-ps-idx`` and
   returns its computed foreground/background colors and whether it is
   rendered at all (``display: none`` or ``visibility: hidden``).
2. ``drop_hidden`` removes unrendered subtrees from the serialized (and
   re-parsed) document, so text strategies only read what a user sees.
3. ``visual_alerts`` walks what remains, joins each element to its colors by index and classifies it in Python.

Thresholds were tuned against the target page and are kept literal:
"visibly red" means r >= 170, g <= 70, b <= 70.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import lxml.html

from .. import Extraction
from .text import clean_label, element_text, has_class

SCAN_ATTR = "data-ps-idx"

RED_MIN = 170
GREEN_BLUE_MAX = 70

LABEL_SEARCH_DEPTH = 4
MAX_SIBLING_LABEL_LEN = 120
FALLBACK_ALERT_LABEL = "Indicador rojo"

_RGB_RE = re.compile(r"rgba?\((\d+),\s*(\d+),\s*(\d+)", re.IGNORECASE)
_DOT_GLYPHS = frozenset({"•", "●"})
_DOT_CLASS_RE = re.compile(r"dot|status|badge", re.IGNORECASE)
_SKIP_TAGS = frozenset({"script", "style", "noscript", "template"})
_LABEL_DESCENDANT_XPATH = f".//label | .//strong | .//b | .//h3 | .//h4 | .//th | .//*[{has_class('label')}]"

STYLE_SCAN_JS = """() => {
  const out = [];
  document.querySelectorAll('body *').forEach((el, i) => {
    el.setAttribute('data-ps-idx', String(i));
    const cs = getComputedStyle(el);
    const hidden = cs.display === 'none' || cs.visibility === 'hidden';
    out.push([i, cs.color || '', cs.backgroundColor || '', hidden]);
  });
  return out;
}"""


@dataclass(frozen=True, slots=True)
class ElementStyle:
    color: str = ""
    background: str = ""
    hidden: bool = False


def styles_from_scan(rows: Iterable) -> dict[int, ElementStyle]:
    """Convert ``STYLE_SCAN_JS`` output rows into an index -> style map."""
    styles: dict[int, ElementStyle] = {}
    for row in rows or ():
        try:
            idx, color, background, *rest = row
            hidden = bool(rest[0]) if rest else False
            styles[int(idx)] = ElementStyle(str(color or ""), str(background or ""), hidden)
        except (TypeError, ValueError):
            continue
    return styles


def parse_rgb(value: str) -> tuple[int, int, int] | None:
    m = _RGB_RE.search(value or "")
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def is_visibly_red(value: str) -> bool:
    rgb = parse_rgb(value)
    if rgb is None:
        return False
    r, g, b = rgb
    return r >= RED_MIN and g <= GREEN_BLUE_MAX and b <= GREEN_BLUE_MAX


def looks_like_dot(el: lxml.html.HtmlElement) -> bool:
    """Small dot/badge element: a bullet glyph or a dot/status/badge class."""
    if (el.text_content() or "").strip() in _DOT_GLYPHS:
        return True
    return bool(_DOT_CLASS_RE.search(el.get("class") or ""))


def nearest_label(el: lxml.html.HtmlElement) -> str:
    """Closest short human-readable text describing *el*.

    At each level: a label-like descendant, then preceding siblings, then
    move up to the parent.
    """
    cur = el
    for _ in range(LABEL_SEARCH_DEPTH):
        if cur is None:
            break
        for candidate in cur.xpath(_LABEL_DESCENDANT_XPATH):
            text = clean_label(element_text(candidate))
            if text:
                return text
        for sib in cur.itersiblings(preceding=True):
            if not isinstance(sib.tag, str):
                continue
            text = clean_label(element_text(sib))
            if text and len(text) <= MAX_SIBLING_LABEL_LEN:
                return text
        cur = cur.getparent()
    return clean_label(element_text(el)) or FALLBACK_ALERT_LABEL


def visual_alerts(doc: lxml.html.HtmlElement, styles: Mapping[int, ElementStyle] | None = None) -> Extraction:
    """Alert labels for red or dot-like elements. Never produces fields."""
    out = Extraction()
    styles = styles or {}
    for el in doc.xpath("//body//*"):
        if el.tag in _SKIP_TAGS:
            continue
        style = None
        idx = el.get(SCAN_ATTR)
        if idx is not None and idx.isdigit():
            style = styles.get(int(idx))
        red = style is not None and (is_visibly_red(style.color) or is_visibly_red(style.background))
        if red or looks_like_dot(el):
            out.add_alert(nearest_label(el))
    return out


def drop_hidden(doc: lxml.html.HtmlElement, styles: Mapping[int, ElementStyle] | None = None) -> int:
    """Remove elements the scan reported as unrendered, keeping their tail text.

    Mutates *doc*. Returns the number of subtrees dropped.
    """
    if not styles:
        return 0
    hidden = []
    for el in doc.xpath(f"//body//*[@{SCAN_ATTR}]"):
        idx = el.get(SCAN_ATTR)
        style = styles.get(int(idx)) if idx.isdigit() else None
        if style is not None and style.hidden:
            hidden.append(el)
    marked = set(hidden)
    roots = [el for el in hidden if not any(a in marked for a in el.iterancestors())]
    for el in roots:
        el.drop_tree()
    return len(roots)
