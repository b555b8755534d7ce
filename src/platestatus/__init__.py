# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""platestatus: vehicle plate status lookup over a dynamically rendered page.

Drives a shared headless Chromium through the lookup form and reconciles
several extraction heuristics into one record:
- fields: label -> value mapping read from the results page
- alerts: labels whose value or presentation signals an abnormal state
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import InvalidIdentifierError

IDENTIFIER_FIELD = "Patente"
SEAL_STATUS_FIELD = "Estado Sello"
# Sentinel prefix: page-derived labels never start with "__".
RESERVED_PREFIX = "__"
ALERTS_FIELD = RESERVED_PREFIX + "alertas_rojas"


def normalize_identifier(identifier: str) -> str:
    """Trim and upper-case a plate code. Raises on an empty result."""
    normalized = (identifier or "").strip().upper()
    if not normalized:
        raise InvalidIdentifierError("Patente requerida")
    return normalized


@dataclass
class Extraction:
    """Partial or merged output of the extraction strategies."""

    fields: dict[str, str] = field(default_factory=dict)
    alerts: list[str] = field(default_factory=list)

    def add_alert(self, label: str) -> None:
        if label and label not in self.alerts:
            self.alerts.append(label)

    @property
    def empty(self) -> bool:
        return not self.fields
