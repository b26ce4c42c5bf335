"""
Interval algebra over half-open ``TimeInterval`` values.

All functions are pure and return new, start-ordered lists. Touching
intervals never overlap, but ``merge`` does coalesce them because their
union is one continuous range.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List

from shared.domain.value_objects import TimeInterval


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end


def merge(intervals: Iterable[TimeInterval]) -> List[TimeInterval]:
    """Coalesce overlapping or adjacent intervals into an ordered list."""
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeInterval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def subtract(shift: TimeInterval, busy: Iterable[TimeInterval]) -> List[TimeInterval]:
    """
    Free intervals left in ``shift`` after removing every busy interval.

    Busy intervals are clipped to the shift and coalesced first, so the
    result together with the clipped busy set covers the shift exactly.
    """
    free = []
    cursor = shift.start
    for block in merge(clip_all(busy, shift)):
        if block.start > cursor:
            free.append(TimeInterval(cursor, block.start))
        cursor = max(cursor, block.end)
    if cursor < shift.end:
        free.append(TimeInterval(cursor, shift.end))
    return free


def subtract_all(shifts: Iterable[TimeInterval], busy: Iterable[TimeInterval]) -> List[TimeInterval]:
    busy = list(busy)
    free = []
    for shift in merge(shifts):
        free.extend(subtract(shift, busy))
    return free


def union(intervals_a: Iterable[TimeInterval], intervals_b: Iterable[TimeInterval]) -> List[TimeInterval]:
    """Merged time covered by either sequence (shop-wide free time)."""
    return merge([*intervals_a, *intervals_b])


def clip_all(intervals: Iterable[TimeInterval], bounds: TimeInterval) -> List[TimeInterval]:
    clipped = (interval.clip(bounds) for interval in intervals)
    return [interval for interval in clipped if interval is not None]


def total_duration(intervals: Iterable[TimeInterval]) -> timedelta:
    return sum((interval.duration for interval in intervals), timedelta(0))


def trim_before(intervals: Iterable[TimeInterval], moment: datetime) -> List[TimeInterval]:
    """Drop everything earlier than ``moment``."""
    result = []
    for interval in intervals:
        if interval.end <= moment:
            continue
        if interval.start < moment:
            interval = TimeInterval(moment, interval.end)
        result.append(interval)
    return result


def _ceil_to_grid(moment: datetime, origin: datetime, slot: timedelta) -> datetime:
    steps, remainder = divmod(moment - origin, slot)
    if remainder:
        steps += 1
    return origin + steps * slot


def _floor_to_grid(moment: datetime, origin: datetime, slot: timedelta) -> datetime:
    steps = (moment - origin) // slot
    return origin + steps * slot


def align_to_grid(
    intervals: Iterable[TimeInterval],
    slot: timedelta,
    origin: datetime,
) -> List[TimeInterval]:
    """
    Shrink each interval to slot boundaries measured from ``origin``.

    Starts are rounded up and ends rounded down, so a reported interval is
    always a subset of the original; intervals shorter than one aligned
    slot disappear.
    """
    if slot <= timedelta(0):
        raise ValueError("Slot size must be positive")

    aligned = []
    for interval in intervals:
        start = _ceil_to_grid(interval.start, origin, slot)
        end = _floor_to_grid(interval.end, origin, slot)
        if start < end:
            aligned.append(TimeInterval(start, end))
    return aligned
