"""Automatic rescan interval."""

from __future__ import annotations

from enum import Enum

_HOUR_MS = 60 * 60 * 1000
_DAY_MS = 24 * _HOUR_MS


class RescanInterval(str, Enum):
    ONE_HOUR = "ONE_HOUR"
    ONE_DAY = "ONE_DAY"
    ONE_WEEK = "ONE_WEEK"
    ONE_MONTH = "ONE_MONTH"
    NEVER = "NEVER"

    @property
    def duration_ms(self) -> int | None:
        """Interval length in milliseconds, or None for NEVER."""
        return _DURATIONS_MS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_DURATIONS_MS: dict[RescanInterval, int | None] = {
    RescanInterval.ONE_HOUR: _HOUR_MS,
    RescanInterval.ONE_DAY: _DAY_MS,
    RescanInterval.ONE_WEEK: 7 * _DAY_MS,
    RescanInterval.ONE_MONTH: 30 * _DAY_MS,
    RescanInterval.NEVER: None,
}

_LABELS = {
    RescanInterval.ONE_HOUR: "Every hour",
    RescanInterval.ONE_DAY: "Every day",
    RescanInterval.ONE_WEEK: "Every week",
    RescanInterval.ONE_MONTH: "Every month",
    RescanInterval.NEVER: "Never",
}
