"""Decides whether an automatic rescan is due at startup."""

from __future__ import annotations

from deptox.models.rescan_interval import RescanInterval


def should_rescan(interval: RescanInterval, last_completed_at_ms: int | None, now_ms: int) -> bool:
    """Return True if a background rescan should run.

    Never when the interval is NEVER, always when no scan has completed yet,
    otherwise only once strictly more than the interval has elapsed.
    """
    duration = interval.duration_ms
    if duration is None:
        return False
    if last_completed_at_ms is None:
        return True
    return now_ms - last_completed_at_ms > duration
