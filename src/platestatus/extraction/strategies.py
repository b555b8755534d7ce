# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text-based extraction strategies.

Each strategy reads one structural pattern from a parsed results page and
returns its own partial Extraction. Strategies never see each other's
output; precedence between them is decided by the reducer in pipeline.py.
"""

from __future__ import annotations

import re

import lxml.html

from .. import Extraction
from .text import clean, element_text, has_class, put_field, split_key_value

HtmlElement = lxml.html.HtmlElement

# (label class, content class) of known "descriptions" components.
DESCRIPTION_COMPONENTS: tuple[tuple[str, str], ...] = (
    ("ant-descriptions-item-label", "ant-descriptions-item-content"),
    ("el-descriptions__label", "el-descriptions__content"),
    ("el-descriptions-item__label", "el-descriptions-item__content"),
)

TABLE_CELL_SEPARATOR = " | "

_LABEL_LIKE_XPATH = f"//label | //strong | //b | //*[{has_class('label')}]"
_VALUE_LIKE_TAGS = frozenset({"span", "p", "div"})
_VALUE_LIKE_CLASSES = frozenset({"value", "dato"})

# Fields whose useful value is a link target (map pins, documents).
_LINK_LABEL_RE = re.compile(r"ubicaci[oó]n|mapa|enlace|link|url|location", re.IGNORECASE)

_FREE_TEXT_XPATH = "//body//text()[not(ancestor::script) and not(ancestor::style) and not(ancestor::noscript)]"


def _is_element(node) -> bool:
    return isinstance(node.tag, str)


# ---------------------------------------------------------------------------
# Structured component
# ---------------------------------------------------------------------------


def _content_for(label_el: HtmlElement, content_class: str) -> HtmlElement | None:
    for sib in label_el.itersiblings():
        if _is_element(sib) and content_class in (sib.get("class") or "").split():
            return sib
    parent = label_el.getparent()
    if parent is None:
        return None
    found = parent.xpath(f".//*[{has_class(content_class)}]")
    return found[0] if found else None


def structured_component(doc: HtmlElement) -> Extraction:
    """Label/content pairs of descriptions-style UI components."""
    out = Extraction()
    for label_class, content_class in DESCRIPTION_COMPONENTS:
        for label_el in doc.xpath(f"//*[{has_class(label_class)}]"):
            content = _content_for(label_el, content_class)
            if content is not None:
                put_field(out, element_text(label_el), element_text(content))
    return out


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def tabular(doc: HtmlElement) -> Extraction:
    """First cell is the label, the remaining cells joined are the value."""
    out = Extraction()
    for tr in doc.iter("tr"):
        cells = [element_text(c) for c in tr if _is_element(c) and c.tag in ("td", "th")]
        if len(cells) < 2:
            continue
        embedded = split_key_value(cells[0])
        if embedded is not None:
            label, value = embedded
        else:
            label = cells[0]
            value = TABLE_CELL_SEPARATOR.join(c for c in cells[1:] if c)
        put_field(out, label, value)
    return out


# ---------------------------------------------------------------------------
# Definition lists
# ---------------------------------------------------------------------------


def definition_list(doc: HtmlElement) -> Extraction:
    """dt/dd paired by position within each dl."""
    out = Extraction()
    for dl in doc.iter("dl"):
        terms = dl.xpath("./dt | ./div/dt")
        defs = dl.xpath("./dd | ./div/dd")
        for dt, dd in zip(terms, defs):
            put_field(out, element_text(dt), element_text(dd))
    return out


# ---------------------------------------------------------------------------
# Label-adjacent values
# ---------------------------------------------------------------------------


def _is_value_like(el: HtmlElement) -> bool:
    if el.tag in _VALUE_LIKE_TAGS:
        return True
    return bool(_VALUE_LIKE_CLASSES.intersection((el.get("class") or "").split()))


def _value_element(label_el: HtmlElement, parent: HtmlElement) -> HtmlElement | None:
    inside_label = set(label_el.iter())
    for el in parent.iterdescendants():
        if not _is_element(el) or el in inside_label:
            continue
        if _is_value_like(el) and element_text(el):
            return el
    return None


def _remaining_text(label_el: HtmlElement) -> str:
    parts = [label_el.tail or ""]
    for sib in label_el.itersiblings():
        if _is_element(sib):
            parts.append(sib.text_content())
        parts.append(sib.tail or "")
    return clean(" ".join(parts))


def _link_target(label_el: HtmlElement, scope: HtmlElement) -> str | None:
    inside_label = set(label_el.iter())
    for a in scope.iter("a"):
        if a in inside_label:
            continue
        href = (a.get("href") or "").strip()
        if href and not href.startswith(("#", "javascript:")):
            return href
    return None


def label_adjacent(doc: HtmlElement) -> Extraction:
    """Emphasis/label elements and the value-like content next to them."""
    out = Extraction()
    for label_el in doc.xpath(_LABEL_LIKE_XPATH):
        key = element_text(label_el)
        parent = label_el.getparent()
        if not key or parent is None:
            continue
        value_el = _value_element(label_el, parent)
        if value_el is not None:
            value = element_text(value_el)
        elif key.endswith(":"):
            value = _remaining_text(label_el)
        else:
            continue
        if _LINK_LABEL_RE.search(key):
            value = _link_target(label_el, parent) or value
        put_field(out, key, value)
    return out


# ---------------------------------------------------------------------------
# Free text
# ---------------------------------------------------------------------------


def free_text(doc: HtmlElement) -> Extraction:
    """Every visible text node shaped like "label: value"."""
    out = Extraction()
    for node in doc.xpath(_FREE_TEXT_XPATH):
        pair = split_key_value(str(node))
        if pair is not None:
            put_field(out, *pair)
    return out
