import io
import sys
import zipfile
from datetime import date, timedelta
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so tests can import local packages
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from timelines.series import TimePoint  # noqa: E402

DAY_ZERO = date(2020, 3, 31)


def day(n: int) -> date:
    """Day 1 is 2020-04-01."""
    return DAY_ZERO + timedelta(days=n)


def timeline(first: int, last: int, start_value: int = 0):
    return tuple(TimePoint(date=day(n), value=start_value + n) for n in range(first, last + 1))


def csv_text(header: str, rows):
    lines = [header] + [f"{day(n).strftime('%d.%m.%Y')};{value}" for n, value in rows]
    return "\n".join(lines) + "\n"


def make_zip(files) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, text in files.items():
            zf.writestr(name, text.encode("utf-8"))
    return buf.getvalue()


@pytest.fixture
def archive_files():
    # cases: daily increments, days 1-10; recovered: days 3-12; deaths: days 1-8
    return {
        "Epikurve.csv": csv_text("time;tägliche Erkrankungen;timestamp", [(n, n) for n in range(1, 11)]),
        "GenesenTimeline.csv": csv_text("datum;Genesen", [(n, n) for n in range(3, 13)]),
        "TodesfaelleTimeline.csv": csv_text("datum;Todesfälle", [(n, 0 if n < 4 else 1) for n in range(1, 9)]),
        "Bezirke.csv": "Bezirk;Anzahl\nGraz(Stadt);12\n",
    }


@pytest.fixture
def archive_bytes(archive_files):
    return make_zip(archive_files)
