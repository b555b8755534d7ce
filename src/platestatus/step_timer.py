# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Lookup step timer for latency logging and failure diagnostics.

Created before the first step so it can describe where a lookup stopped
even when a step raises. A step lasts from its mark to the next mark, or
to ``finalize``.
"""

from __future__ import annotations

import time

_STEP_HINTS = {
    "acquire": "Shared browser could not be launched or reached.",
    "load": "Target page is slow to parse or unreachable.",
    "locate_input": "Lookup form markup changed; review INPUT_LOCATORS.",
    "submit": "Search button markup changed; review BUTTON_LOCATORS.",
    "extract": "Results page could not be snapshotted.",
}


class StepTimer:
    """Ordered step marks on the monotonic clock."""

    def __init__(self) -> None:
        self._origin_ns = time.monotonic_ns()
        self._marks: list[tuple[str, int]] = []
        self._end_ns: int | None = None

    def step(self, name: str) -> None:
        self._marks.append((name, time.monotonic_ns()))

    def finalize(self) -> None:
        """Close the last step. Later calls keep the first end time."""
        if self._end_ns is None:
            self._end_ns = time.monotonic_ns()

    @property
    def last_step(self) -> str | None:
        return self._marks[-1][0] if self._marks else None

    def elapsed_per_step(self) -> dict[str, float]:
        """{step: ms}; an unfinished last step is measured up to now."""
        end = self._end_ns if self._end_ns is not None else time.monotonic_ns()
        bounds = [start for _, start in self._marks[1:]] + [end]
        return {name: round((stop - start) / 1e6, 1) for (name, start), stop in zip(self._marks, bounds)}

    def total_ms(self) -> float:
        end = self._end_ns if self._end_ns is not None else time.monotonic_ns()
        return round((end - self._origin_ns) / 1e6, 1)

    def failure_report(self) -> dict:
        failed_at = self.last_step or "unknown"
        return {
            "failed_at": failed_at,
            "steps": self.elapsed_per_step(),
            "total_ms": self.total_ms(),
            "hint": _STEP_HINTS.get(failed_at, f"Failed during '{failed_at}' step."),
        }
