#!/usr/bin/env python3
"""
Daily chart CLI for cotwit.

Usage:
    python -m timelines.run_daily                          # download, render, write to output/
    python -m timelines.run_daily --archive data/data.zip  # use a local copy of the archive
    python -m timelines.run_daily --publish                # also post to COTWIT_PUBLISH_URL
    python -m timelines.run_daily --help

Environment variables:
    COTWIT_ARCHIVE_URL: Archive to download (default: the ministry's data.zip)
    COTWIT_PUBLISH_URL: Feed endpoint for --publish
    COTWIT_PUBLISH_TOKEN: Bearer token for the feed endpoint
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from collector.main import ArchiveError, load_config_from_env, open_archive, run_once
from timelines.dataset import Dataset, assemble
from timelines.errors import PipelineError
from timelines.publish import FilePublisher, HttpPublisher, Publisher, load_publish_config_from_env
from timelines.render import DEFAULT_TAG, render_caption, render_chart


@dataclass
class RunResult:
    dataset: Dataset
    caption: str
    publication_ids: List[str]


async def run(
    archive_path: Optional[Path],
    output_dir: Path,
    publish: bool = False,
    tag: str = DEFAULT_TAG,
) -> RunResult:
    """
    Fetch, assemble, render and publish one chart.

    Nothing is written or posted until the dataset, image and caption all
    exist. The remote post goes out before the local copy is written.
    """
    cfg = load_config_from_env()
    if archive_path is not None:
        try:
            data = archive_path.read_bytes()
        except OSError as e:
            raise ArchiveError(f"cannot read {archive_path}: {e}") from e
        entries = open_archive(data, chunk_size=cfg.chunk_size)
        print(f"[timelines] Using local archive {archive_path} ({len(entries)} entries)")
    else:
        entries = await run_once(cfg)

    dataset = await assemble(entries)
    summary = dataset.latest()
    print(
        f"[timelines] Aligned {len(dataset)} days "
        f"({dataset.dates[0].isoformat()} to {summary.date.isoformat()})"
    )

    image = render_chart(dataset, tag=tag)
    caption = render_caption(dataset, tag=tag)

    publishers: List[Publisher] = []
    if publish:
        publishers.append(HttpPublisher.from_config(load_publish_config_from_env()))
    publishers.append(FilePublisher(output_dir))

    ids = []
    for publisher in publishers:
        ids.append(await publisher.publish(image, caption, summary.date))
    return RunResult(dataset=dataset, caption=caption, publication_ids=ids)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the daily chart.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(
        description="Render the daily radial case chart and publish it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--archive",
        type=Path,
        help="Read this local zip instead of downloading COTWIT_ARCHIVE_URL",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Output directory for the chart and caption (default: output/)",
    )
    parser.add_argument(
        "--publish",
        action="store_true",
        help="Also post to COTWIT_PUBLISH_URL",
    )
    parser.add_argument(
        "--tag",
        type=str,
        default=DEFAULT_TAG,
        help=f"Handle printed on the chart and caption (default: {DEFAULT_TAG})",
    )

    args = parser.parse_args(argv)

    try:
        result = asyncio.run(run(args.archive, args.output_dir, publish=args.publish, tag=args.tag))
    except (PipelineError, RuntimeError) as e:
        print(f"[timelines] ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"[timelines] ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        return 1

    summary = result.dataset.latest()
    print("[timelines] Published:")
    for pid in result.publication_ids:
        print(f"[timelines]   - {pid}")
    print("[timelines]")
    print("[timelines] Summary:")
    print(f"[timelines]   Cases: {summary.cases}")
    print(f"[timelines]   Active: {summary.active}")
    print(f"[timelines]   Recovered: {summary.recovered}")
    print(f"[timelines]   Deaths: {summary.deaths}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
