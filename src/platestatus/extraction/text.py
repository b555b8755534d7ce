# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text normalization and field-label rules shared by all strategies."""

from __future__ import annotations

import re

import lxml.html

from .. import RESERVED_PREFIX, Extraction

_WS_RE = re.compile(r"\s+")

# Labels shaped like a date or a clock time are artifacts of free text
# split on a colon ("12/05/2024 10:30: ..."), not field names.
DATE_LABEL_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}")
TIME_LABEL_RE = re.compile(r"^\d{1,2}:\d{2}$")

KEY_VALUE_RE = re.compile(r"^(.+?):\s*(.+)$")

ALERT_GLYPH_RE = re.compile("[\U0001f534\U0001f7e5⛔❌]")  # 🔴 🟥 ⛔ ❌
ALERT_WORD_RE = re.compile(r"\brojo\b", re.IGNORECASE)


def clean(text: str | None) -> str:
    """Collapse whitespace runs and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def clean_label(text: str | None) -> str:
    """``clean`` plus removal of trailing colons ("Estado Sello:" -> "Estado Sello")."""
    return clean(text).rstrip(": ")


def is_valid_label(label: str) -> bool:
    if not label or label.startswith(RESERVED_PREFIX):
        return False
    if not any(ch.isalpha() for ch in label):
        return False
    return not (DATE_LABEL_RE.match(label) or TIME_LABEL_RE.match(label))


def has_alert_marker(value: str) -> bool:
    return bool(ALERT_GLYPH_RE.search(value) or ALERT_WORD_RE.search(value))


def split_key_value(text: str) -> tuple[str, str] | None:
    """Split "label: value" on the first colon, or None."""
    m = KEY_VALUE_RE.match(clean(text))
    if m is None:
        return None
    return m.group(1), m.group(2)


def element_text(el: lxml.html.HtmlElement) -> str:
    """Whitespace-normalized text content of an element."""
    return clean(el.text_content())


def put_field(out: Extraction, label: str, value: str) -> str | None:
    """Normalize and insert one pair into *out*, flagging marker values.

    Returns the stored label, or None when the pair was rejected.
    """
    label = clean_label(label)
    value = clean(value)
    if not value or not is_valid_label(label):
        return None
    out.fields[label] = value
    if has_alert_marker(value):
        out.add_alert(label)
    return label


def has_class(name: str) -> str:
    """XPath predicate body matching a whole class token."""
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"
