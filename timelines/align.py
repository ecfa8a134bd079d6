from __future__ import annotations

from datetime import date
from typing import Dict, Mapping, Tuple

from timelines.errors import AlignmentError
from timelines.series import Timeline


def alignment_window(timelines: Mapping[str, Timeline]) -> Tuple[date, date]:
    """
    Largest date range covered by every timeline.

    Each timeline is assumed sorted ascending. The window starts at the latest
    first date and ends at the earliest last date, both inclusive.

    Raises:
        AlignmentError: no timelines, an empty timeline, or no overlap
    """
    if not timelines:
        raise AlignmentError("no timelines to align")
    empty = sorted(name for name, timeline in timelines.items() if not timeline)
    if empty:
        raise AlignmentError(f"empty timeline(s): {', '.join(empty)}")

    first = max(timeline[0].date for timeline in timelines.values())
    last = min(timeline[-1].date for timeline in timelines.values())
    if first > last:
        raise AlignmentError(f"no common date window: starts {first.isoformat()} after it ends {last.isoformat()}")
    return first, last


def truncate(timeline: Timeline, first: date, last: date) -> Timeline:
    """Slice of `timeline` with first <= date <= last, found by scanning in from both ends."""
    start = 0
    while start < len(timeline) and timeline[start].date < first:
        start += 1
    end = len(timeline) - 1
    while end >= start and timeline[end].date > last:
        end -= 1
    return tuple(timeline[start:end + 1])


def align(timelines: Mapping[str, Timeline]) -> Dict[str, Timeline]:
    """
    Truncate every timeline to the common window.

    Aligning already aligned timelines returns them unchanged.
    """
    first, last = alignment_window(timelines)
    return {name: truncate(timeline, first, last) for name, timeline in timelines.items()}
