from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Sequence, Tuple, Union

from timelines.records import RawRow

Number = Union[int, float]

DATE_FORMAT = "%d.%m.%Y"
EPOCH = date(1970, 1, 1)  # stands in for unparseable dates


@dataclass(frozen=True)
class TimePoint:
    date: date
    value: Number


Timeline = Tuple[TimePoint, ...]


@dataclass(frozen=True)
class RawCell:
    """Numeric cell still in source text form, e.g. "12" or "<5"."""
    text: str

    def to_number(self) -> float:
        # float() accepts digit grouping like "1_000"; the source never uses it
        if "_" in self.text:
            return math.nan
        try:
            return float(self.text)
        except ValueError:
            return math.nan


@dataclass(frozen=True)
class ParsedCell:
    value: float

    def to_number(self) -> float:
        return float(self.value)


NumericCell = Union[RawCell, ParsedCell]


def or_zero(cell: NumericCell) -> Number:
    """
    Numeric value of a cell, or 0 when it does not parse.

    The dataset redacts small counts as "<5", so those read as 0. Negative
    numbers pass through unchanged. Integral values come back as int.
    """
    value = cell.to_number()
    if not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def parse_day(text: str, fmt: str = DATE_FORMAT) -> date:
    try:
        return datetime.strptime(text.strip(), fmt).date()
    except ValueError:
        return EPOCH


@dataclass(frozen=True)
class SeriesSpec:
    """
    How one named series is found and interpreted.

    Fields:
        name: key in the resulting Dataset ("cases", "recovered", "deaths")
        entry_marker: substring identifying the archive entry
        cumulative: True if source values are already running totals,
            False if they are daily increments needing a running sum
    """
    name: str
    entry_marker: str
    cumulative: bool


DEFAULT_SERIES: Tuple[SeriesSpec, ...] = (
    SeriesSpec(name="cases", entry_marker="Epikurve", cumulative=False),
    SeriesSpec(name="recovered", entry_marker="GenesenTimeline", cumulative=True),
    SeriesSpec(name="deaths", entry_marker="TodesfaelleTimeline", cumulative=True),
)


def _cell(row: RawRow, idx: int) -> str:
    return row[idx] if idx < len(row) else ""


def build_timeline(
    rows: Sequence[RawRow],
    cumulative: bool,
    date_format: str = DATE_FORMAT,
) -> Timeline:
    """
    Turn raw rows (header first) into a timeline of (date, cumulative value).

    Column 0 is the date, column 1 the value; further columns are ignored.
    With cumulative=False the values are summed in row order so that index i
    holds the total of rows 0..i.
    """
    points = []
    running: Number = 0
    for row in rows[1:]:
        value = or_zero(RawCell(_cell(row, 1)))
        if not cumulative:
            running += value
            value = running
        points.append(TimePoint(date=parse_day(_cell(row, 0), date_format), value=value))
    return tuple(points)
