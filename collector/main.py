from __future__ import annotations

import asyncio
import io
import os
import sys
import zipfile
from dataclasses import dataclass, field
from typing import AsyncIterator, List

import httpx

DEFAULT_ARCHIVE_URL = "https://info.gesundheitsministerium.at/data/data.zip"


class ArchiveError(RuntimeError):
    """The remote archive could not be downloaded or opened."""


@dataclass(frozen=True)
class CollectorConfig:
    archive_url: str
    user_agent: str
    timeout_s: float
    chunk_size: int


@dataclass(frozen=True)
class ArchiveEntry:
    """
    One file inside the downloaded archive.

    Entries share the archive bytes; `chunks()` opens and closes its own
    ZipFile on each call, so an entry can be read more than once.
    """
    name: str
    size: int
    data: bytes = field(repr=False)
    chunk_size: int = 64 * 1024

    async def chunks(self) -> AsyncIterator[bytes]:
        with zipfile.ZipFile(io.BytesIO(self.data)) as archive, archive.open(self.name) as fh:
            while True:
                block = await asyncio.to_thread(fh.read, self.chunk_size)
                if not block:
                    break
                yield block


async def fetch_archive(client: httpx.AsyncClient, url: str) -> bytes:
    """
    Download the archive in a single request.

    No retries: a failed request surfaces immediately as ArchiveError and the
    caller owns any rerun policy.
    """
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ArchiveError(f"http_status:{e.response.status_code} for {url}") from e
    except httpx.HTTPError as e:
        raise ArchiveError(f"network:{type(e).__name__} for {url}") from e
    return resp.content


def open_archive(data: bytes, chunk_size: int = 64 * 1024) -> List[ArchiveEntry]:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            infos = archive.infolist()
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"not a zip archive: {e}") from e
    return [
        ArchiveEntry(name=info.filename, size=info.file_size, data=data, chunk_size=chunk_size)
        for info in infos
        if not info.is_dir()
    ]


def load_config_from_env() -> CollectorConfig:
    archive_url = os.environ.get("COTWIT_ARCHIVE_URL", "").strip() or DEFAULT_ARCHIVE_URL
    try:
        chunk_size = int(os.environ.get("COTWIT_CHUNK_SIZE", str(64 * 1024)))
        timeout_s = float(os.environ.get("COTWIT_TIMEOUT_S", "30"))
    except ValueError as e:
        raise RuntimeError(f"Invalid collector setting: {e}") from e
    if chunk_size <= 0:
        raise RuntimeError("COTWIT_CHUNK_SIZE must be > 0")

    return CollectorConfig(
        archive_url=archive_url,
        user_agent=os.environ.get("COTWIT_USER_AGENT", "cotwit/0.1"),
        timeout_s=timeout_s,
        chunk_size=chunk_size,
    )


async def run_once(cfg: CollectorConfig, transport: httpx.AsyncBaseTransport | None = None) -> List[ArchiveEntry]:
    headers = {"User-Agent": cfg.user_agent}
    async with httpx.AsyncClient(timeout=cfg.timeout_s, headers=headers, transport=transport) as client:
        data = await fetch_archive(client, cfg.archive_url)
    entries = open_archive(data, chunk_size=cfg.chunk_size)
    print(f"[collector] fetched {len(data)} bytes, {len(entries)} entries from {cfg.archive_url}")
    return entries


def main() -> int:
    cfg = load_config_from_env()
    try:
        entries = asyncio.run(run_once(cfg))
    except ArchiveError as e:
        print(f"[collector] ERROR: {e}", file=sys.stderr)
        return 1
    for entry in entries:
        print(f"[collector]   - {entry.name} ({entry.size} B)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
