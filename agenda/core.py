# agenda/core.py

"""Closed-open time intervals measured in minutes since midnight.

Once the calendar date is fixed, every resolver in the engine works on plain
integers, so nothing below knows about dates or timezones.
"""

from datetime import time
from typing import Iterable, List, NamedTuple

MINUTES_PER_DAY = 24 * 60


class Interval(NamedTuple):
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"[{format_minutes(self.start)}, {format_minutes(self.end)})"


def make_interval(start: int, end: int) -> Interval:
    if start < 0 or end > MINUTES_PER_DAY:
        raise ValueError(f"interval [{start}, {end}) falls outside a single day")
    if start >= end:
        raise ValueError(f"interval start {start} must be before end {end}")
    return Interval(start, end)


def day_interval() -> Interval:
    return Interval(0, MINUTES_PER_DAY)


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} is not a time of day")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def contains(outer: Interval, inner: Interval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def subtract(base: Interval, cut: Interval) -> List[Interval]:
    """Remove ``cut`` from ``base``; returns 0, 1 or 2 fragments."""
    if not overlaps(base, cut):
        return [base]

    fragments = []
    if base.start < cut.start:
        fragments.append(Interval(base.start, cut.start))
    if cut.end < base.end:
        fragments.append(Interval(cut.end, base.end))
    return fragments


def merge(intervals: Iterable[Interval]) -> List[Interval]:
    """Union into an ordered list of non-overlapping intervals.

    Touching intervals ([9:00, 10:00) and [10:00, 11:00)) are joined.
    """
    merged: List[Interval] = []
    for current in sorted(intervals):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def subtract_all(bases: Iterable[Interval], cuts: Iterable[Interval]) -> List[Interval]:
    remaining = merge(bases)
    for cut in merge(cuts):
        next_remaining = []
        for base in remaining:
            next_remaining.extend(subtract(base, cut))
        remaining = next_remaining
    return remaining


def aligned_starts(free: Interval, duration: int, step: int) -> List[int]:
    """Start times on the ``step`` grid (anchored at midnight) that fit in ``free``."""
    first = -(-free.start // step) * step  # round up to the grid
    return list(range(first, free.end - duration + 1, step))
