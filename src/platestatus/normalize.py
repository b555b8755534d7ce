# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Normalization of a merged extraction into the record returned to callers.

Order: seal-status canonicalization → identifier back-fill → business
alert rules → final shape. Business rules only add alerts; they never
remove visual or text-derived ones.
"""

from __future__ import annotations

import re

from . import ALERTS_FIELD, IDENTIFIER_FIELD, SEAL_STATUS_FIELD, Extraction

SEAL_ACTIVE_TOKEN = "ACTIVO"
DBMS_NOT_ACCREDITED_ALERT = "DBMS: NO ACREDITADO"

_NOT_ACCREDITED_RE = re.compile(r"no\s*acreditado", re.IGNORECASE)
_IDENTIFIER_LABELS = frozenset({"patente", "placa"})


def find_seal_label(fields: dict[str, str]) -> str | None:
    """First label mentioning both "estado" and "sello", case-insensitively."""
    for label in fields:
        lowered = label.lower()
        if "estado" in lowered and "sello" in lowered:
            return label
    return None


def canonicalize_seal_status(fields: dict[str, str]) -> dict[str, str]:
    """Move the seal-status value to ``SEAL_STATUS_FIELD``, upper-cased. Idempotent."""
    label = find_seal_label(fields)
    if label is None:
        return fields
    value = str(fields[label]).strip().upper()
    if label != SEAL_STATUS_FIELD:
        del fields[label]
    fields[SEAL_STATUS_FIELD] = value
    return fields


def backfill_identifier(fields: dict[str, str], identifier: str) -> dict[str, str]:
    if not any(label.strip().lower() in _IDENTIFIER_LABELS for label in fields):
        fields[IDENTIFIER_FIELD] = identifier
    return fields


def business_alerts(fields: dict[str, str]) -> list[str]:
    """Alerts derived from field values rather than page presentation."""
    alerts = []
    for label, value in fields.items():
        if label.strip().lower() == "dbms" and _NOT_ACCREDITED_RE.search(str(value)):
            alerts.append(DBMS_NOT_ACCREDITED_ALERT)
            break
    seal = fields.get(SEAL_STATUS_FIELD)
    if seal is not None and seal != SEAL_ACTIVE_TOKEN:
        alerts.append(SEAL_STATUS_FIELD)
    return alerts


def normalize_record(extraction: Extraction, identifier: str) -> dict:
    """Build the caller-facing record from a merged extraction."""
    fields = dict(extraction.fields)
    canonicalize_seal_status(fields)
    backfill_identifier(fields, identifier)

    alerts = list(extraction.alerts)
    for label in business_alerts(fields):
        if label not in alerts:
            alerts.append(label)

    record: dict = dict(fields)
    if alerts:
        record[ALERTS_FIELD] = alerts
    return record


def has_data(record: dict) -> bool:
    """True when the record holds a page-derived field besides the identifier."""
    return any(
        label != ALERTS_FIELD and label.strip().lower() not in _IDENTIFIER_LABELS for label in record
    )
