from __future__ import annotations

from typing import AsyncIterable, List, Tuple

from timelines.errors import ReadError

RawRow = Tuple[str, ...]

ROW_SEPARATOR = "\n"
CELL_SEPARATOR = ";"


def parse_table(text: str) -> List[RawRow]:
    """
    Split delimited text into rows of trimmed cells.

    Any row shape is accepted; the header is kept (dropping it is the
    series builder's job). Blank input yields no rows.
    """
    text = text.strip()
    if not text:
        return []
    return [
        tuple(cell.strip() for cell in line.strip().split(CELL_SEPARATOR))
        for line in text.split(ROW_SEPARATOR)
    ]


async def read_rows(chunks: AsyncIterable[bytes]) -> List[RawRow]:
    """
    Consume a byte stream to completion and parse it into rows.

    Chunks are joined before decoding, so rows and multi-byte characters may
    straddle chunk boundaries.

    Failure modes:
        - Raises ReadError if the stream errors or is not valid UTF-8
    """
    buf = bytearray()
    try:
        async for chunk in chunks:
            buf.extend(chunk)
        text = bytes(buf).decode("utf-8-sig")
    except Exception as e:
        raise ReadError(f"{type(e).__name__}: {e}") from e
    return parse_table(text)
