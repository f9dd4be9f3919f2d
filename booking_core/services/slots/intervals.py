# booking_core/services/slots/intervals.py
"""
Interval arithmetic on half-open time windows [start, end).

Pure functions only: no database, no clock, no timezone lookups.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """[a_start, a_end) and [b_start, b_end) intersect iff a_start < b_end and b_start < a_end."""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True, order=True)
class TimeWindow:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"window end {self.end} must be after start {self.start}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeWindow") -> bool:
        return self.start <= other.start and other.end <= self.end


def merge_windows(windows: Iterable[TimeWindow]) -> list[TimeWindow]:
    """
    Union of windows as a sorted list of disjoint windows.

    Overlapping and touching windows ([9, 12) + [12, 14)) collapse into one.
    """
    ordered = sorted(windows)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeWindow(last.start, current.end)
        else:
            merged.append(current)
    return merged


def subtract_window(window: TimeWindow, block: TimeWindow) -> list[TimeWindow]:
    """
    Remove block from window.

    Returns 0, 1 or 2 windows:
    - no overlap         -> [window]
    - block covers all   -> []
    - block covers head  -> [tail]
    - block covers tail  -> [head]
    - block in middle    -> [head, tail]
    """
    if not window.overlaps(block):
        return [window]

    result = []
    if block.start > window.start:
        result.append(TimeWindow(window.start, block.start))
    if block.end < window.end:
        result.append(TimeWindow(block.end, window.end))
    return result


def subtract_all(windows: Iterable[TimeWindow], blocks: Iterable[TimeWindow]) -> list[TimeWindow]:
    """Subtract every block from every window; result is merged and sorted."""
    remaining = list(windows)
    for block in blocks:
        next_remaining = []
        for window in remaining:
            next_remaining.extend(subtract_window(window, block))
        remaining = next_remaining
    return merge_windows(remaining)


def discretize(window: TimeWindow, step: timedelta) -> Iterator[datetime]:
    """
    Start times spaced exactly `step` apart, beginning at window.start.

    The last start t satisfies t + step <= window.end.
    """
    if step <= timedelta(0):
        raise ValueError("step must be positive")

    t = window.start
    while t + step <= window.end:
        yield t
        t += step


def week_day_of(d: date) -> int:
    """Weekday with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7
