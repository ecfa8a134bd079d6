from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Any, AsyncIterable, Dict, Iterable, List, Protocol, Sequence, Tuple

from timelines.align import align
from timelines.errors import AlignmentError, IncompleteSourceError, LengthMismatchError
from timelines.records import read_rows
from timelines.series import DEFAULT_SERIES, Number, SeriesSpec, Timeline, TimePoint, build_timeline

DATASET_SERIES = ("cases", "recovered", "deaths")


class SourceEntry(Protocol):
    """Anything with a name and a re-readable byte stream, e.g. collector.main.ArchiveEntry."""

    name: str

    def chunks(self) -> AsyncIterable[bytes]: ...


@dataclass(frozen=True)
class DailySummary:
    date: date
    cases: Number
    recovered: Number
    deaths: Number
    active: Number
    new_cases: Number


@dataclass(frozen=True)
class Dataset:
    """
    Three date-aligned cumulative timelines.

    Invariants (checked on construction):
      - len(cases) == len(recovered) == len(deaths)
      - the three dates at every index are identical
    """
    cases: Timeline
    recovered: Timeline
    deaths: Timeline

    def __post_init__(self) -> None:
        verify_aligned(self.timelines())

    def timelines(self) -> Dict[str, Timeline]:
        return {"cases": self.cases, "recovered": self.recovered, "deaths": self.deaths}

    @property
    def dates(self) -> Tuple[date, ...]:
        return tuple(p.date for p in self.cases)

    def __len__(self) -> int:
        return len(self.cases)

    def active(self) -> Timeline:
        """Cases neither recovered nor deceased, per day."""
        return tuple(
            TimePoint(date=c.date, value=c.value - r.value - d.value)
            for c, r, d in zip(self.cases, self.recovered, self.deaths)
        )

    def latest(self) -> DailySummary:
        if not self.cases:
            raise ValueError("dataset is empty")
        prev = self.cases[-2].value if len(self.cases) > 1 else 0
        return DailySummary(
            date=self.cases[-1].date,
            cases=self.cases[-1].value,
            recovered=self.recovered[-1].value,
            deaths=self.deaths[-1].value,
            active=self.active()[-1].value,
            new_cases=self.cases[-1].value - prev,
        )


def verify_aligned(timelines: Dict[str, Timeline]) -> None:
    lengths = {name: len(timeline) for name, timeline in timelines.items()}
    if len(set(lengths.values())) > 1:
        raise LengthMismatchError(f"timeline lengths differ: {lengths}")
    for idx, points in enumerate(zip(*timelines.values())):
        if len({p.date for p in points}) > 1:
            raise AlignmentError(f"dates differ at index {idx}: {[p.date.isoformat() for p in points]}")


def match_entries(
    entries: Iterable[Any], specs: Sequence[SeriesSpec] = DEFAULT_SERIES
) -> Dict[str, Tuple[SeriesSpec, Any]]:
    """
    Pair each series with the first entry whose name contains its marker.

    Substring matching tolerates renamed entries such as "Epikurve_v2.csv".
    Later entries matching an already-paired series are ignored.
    """
    matched: Dict[str, Tuple[SeriesSpec, Any]] = {}
    for entry in entries:
        for spec in specs:
            if spec.name not in matched and spec.entry_marker in entry.name:
                matched[spec.name] = (spec, entry)
                break
    return matched


async def _build(spec: SeriesSpec, entry: SourceEntry) -> Tuple[str, Timeline]:
    rows = await read_rows(entry.chunks())
    return spec.name, build_timeline(rows, cumulative=spec.cumulative)


async def assemble(entries: Iterable[SourceEntry], specs: Sequence[SeriesSpec] = DEFAULT_SERIES) -> Dataset:
    """
    Build one aligned Dataset from archive entries.

    Args:
        entries: named byte sources, typically every member of the archive
        specs: the series to look for; must name cases, recovered and deaths

    Returns:
        Dataset with three equal-length, date-aligned timelines

    Failure modes:
        - IncompleteSourceError if specs do not name exactly cases, recovered
          and deaths, or any series has no matching entry (nothing is read)
        - ReadError if any stream fails; no partial dataset is returned
        - AlignmentError if the series share no date window
    """
    names = {spec.name for spec in specs}
    if names != set(DATASET_SERIES):
        absent = [name for name in DATASET_SERIES if name not in names]
        raise IncompleteSourceError(
            f"series specs must name exactly {', '.join(DATASET_SERIES)}; "
            f"got {', '.join(sorted(names)) or 'none'}"
            + (f" (missing {', '.join(absent)})" if absent else "")
        )

    matched = match_entries(entries, specs)
    missing = [spec.entry_marker for spec in specs if spec.name not in matched]
    if missing:
        raise IncompleteSourceError(
            f"found {len(matched)} of {len(specs)} series; missing entries matching: {', '.join(missing)}"
        )

    built: List[Tuple[str, Timeline]] = await asyncio.gather(
        *(_build(spec, entry) for spec, entry in matched.values())
    )
    aligned = align(dict(built))
    return Dataset(
        cases=aligned["cases"],
        recovered=aligned["recovered"],
        deaths=aligned["deaths"],
    )
