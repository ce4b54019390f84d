"""
Per-side think-time clocks for the timed variant.

Each side's remaining milliseconds are charged with the measured duration of
its own think step and never go below zero. A disabled manager (untimed
variants) reports no snapshot and leaves request timeouts at the global ceiling.
"""
from __future__ import annotations

import math

from .events import COLORS, Clocks, Color


def clock_ms_from_minutes(minutes, default: float = 3) -> int:
    """Initial allotment from a requested minute count, clamped to 1..3 minutes."""
    try:
        value = float(minutes if minutes is not None else default)
    except (TypeError, ValueError):
        value = default
    if not math.isfinite(value):
        value = default
    return int(min(3.0, max(1.0, value)) * 60_000)


class ClockManager:
    def __init__(self, initial_ms: int | None = None):
        self.enabled = bool(initial_ms and initial_ms > 0)
        self.initial_ms = int(initial_ms) if self.enabled else 0
        self._remaining: dict[str, int] = {c: self.initial_ms for c in COLORS}

    def remaining(self, color: Color) -> int:
        return self._remaining[color]

    def charge(self, color: Color, elapsed_ms: int) -> int:
        self._remaining[color] = max(0, self._remaining[color] - max(0, int(elapsed_ms)))
        return self._remaining[color]

    def is_flagged(self, color: Color) -> bool:
        return self.enabled and self._remaining[color] <= 0

    def request_timeout_ms(self, color: Color, ceiling_ms: int) -> int:
        """A request may never outlast the side's remaining time nor the global ceiling."""
        if not self.enabled:
            return ceiling_ms
        return min(ceiling_ms, self._remaining[color])

    def snapshot(self) -> Clocks | None:
        if not self.enabled:
            return None
        return Clocks(white_ms=self._remaining["white"], black_ms=self._remaining["black"])
