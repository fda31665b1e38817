"""
Half-open interval arithmetic.

Every interval is ``[start, end)``: the end instant is excluded, so two
intervals that merely touch do not overlap. All functions are pure and
deterministic; equal inputs always give equal, identically ordered output.
"""

from bisect import bisect_left
from datetime import datetime
from typing import Iterable, NamedTuple, Optional, Sequence


class Interval(NamedTuple):
    """A half-open ``[start, end)`` span of instants."""

    start: datetime
    end: datetime

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return a.start < b.end and b.start < a.end


def normalize(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping and adjacent intervals, sorted ascending by start.

    Empty intervals (``start >= end``) are dropped.
    """
    ordered = sorted(
        (Interval(i.start, i.end) for i in intervals if i.start < i.end),
        key=lambda i: (i.start, i.end),
    )
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def subtract(base: Iterable[Interval], removals: Iterable[Interval]) -> list[Interval]:
    """Remove every removal from base, splitting partially covered intervals.

    The result is normalized.
    """
    remaining = normalize(base)
    cuts = normalize(removals)
    if not cuts:
        return remaining

    result: list[Interval] = []
    for interval in remaining:
        cursor = interval.start
        for cut in cuts:
            if cut.end <= cursor:
                continue
            if cut.start >= interval.end:
                break
            if cut.start > cursor:
                result.append(Interval(cursor, cut.start))
            cursor = max(cursor, cut.end)
            if cursor >= interval.end:
                break
        if cursor < interval.end:
            result.append(Interval(cursor, interval.end))
    return normalize(result)


def busy_ends(busy: Sequence[Interval]) -> list[datetime]:
    """End instants of a normalized busy list, the bisect key for :func:`overlaps_any`."""
    return [b.end for b in busy]


def overlaps_any(
    candidate: Interval,
    busy: Sequence[Interval],
    ends: Optional[Sequence[datetime]] = None,
) -> bool:
    """Check a candidate against a *normalized* busy list.

    ``busy`` must come from :func:`normalize` (sorted, disjoint) so a binary
    search on end instants finds the only interval that can overlap. Pass
    ``ends`` from :func:`busy_ends` when checking many candidates against
    the same busy list.
    """
    if not busy:
        return False
    if ends is None:
        ends = busy_ends(busy)
    idx = bisect_left(ends, candidate.start)
    # bisect_left lands on the first busy.end >= candidate.start; an end equal
    # to candidate.start only touches, so move past it.
    while idx < len(busy) and busy[idx].end <= candidate.start:
        idx += 1
    return idx < len(busy) and overlaps(candidate, busy[idx])
