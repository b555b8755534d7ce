# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""platestatus exception hierarchy.

All errors inherit from PlateStatusError, allowing callers to catch the
base class for any failure or specific subclasses for targeted handling.
Automation errors carry the sequencer step that failed.
"""

from __future__ import annotations


class PlateStatusError(Exception):
    """Base exception for all platestatus errors."""


class ConfigError(PlateStatusError):
    """Invalid configuration value."""


class InvalidIdentifierError(PlateStatusError):
    """Identifier is empty after normalization."""


class AutomationError(PlateStatusError):
    """A browser automation task failed."""

    def __init__(self, message: str, *, step: str = "") -> None:
        super().__init__(message)
        self.step = step


class InputNotFoundError(AutomationError):
    """No candidate selector matched the identifier input field."""


class ButtonNotFoundError(AutomationError):
    """No candidate selector matched the search button."""


class NavigationTimeoutError(AutomationError):
    """The target page did not finish parsing within the navigation budget."""


class UnexpectedAutomationError(AutomationError):
    """Any other lower-level failure (Playwright, browser crash, extraction)."""
