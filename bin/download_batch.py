#!/usr/bin/env python3
"""
Prismic Backup Batched Asset Downloader

Downloads a list of asset descriptors in fixed-size batches:

- The list is cut into contiguous batches of BATCH_SIZE (10)
- Batches run strictly in order; inside a batch every download runs
  concurrently and the whole batch is awaited before the next starts,
  so at most BATCH_SIZE downloads are ever in flight
- A failed download is recorded and logged; it never stops the run
- Failed descriptors are written to failed-assets.json at the end
  (only when there is at least one failure)

There is no retry and no skip-existing: running twice over the same list
rewrites the same files.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Sequence

import aiohttp
from tqdm.asyncio import tqdm

from single_download import DownloadOutcome, download_single

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
FAILED_ASSETS_FILE = "failed-assets.json"


@dataclass
class DownloadSummary:
    """Totals for one downloader run. `failed` is owned by that run only."""
    total: int = 0
    succeeded: int = 0
    failed: list[dict] = field(default_factory=list)
    batches: int = 0
    bytes_downloaded: int = 0
    manifest_path: Optional[str] = None

    def record(self, outcome: DownloadOutcome) -> None:
        if outcome.success:
            self.succeeded += 1
            self.bytes_downloaded += outcome.bytes_downloaded
        else:
            self.failed.append(outcome.asset)


def iter_batches(items: Sequence, size: int = BATCH_SIZE) -> Iterator[Sequence]:
    """Yield contiguous slices of at most `size` items, in order."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _write_json(path: str, data) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


async def write_failed_assets(failed: list[dict], root: str) -> Optional[str]:
    """
    Write the failure manifest under `root`.

    Returns the manifest path, or None when nothing failed (no file written)
    or the manifest itself could not be written.
    """
    if not failed:
        return None

    manifest = os.path.join(root, FAILED_ASSETS_FILE)
    try:
        await asyncio.to_thread(_write_json, manifest, failed)
    except OSError as e:
        logger.error(f"Failed to save failed assets log: {e}")
        return None

    noun = "failures" if len(failed) > 1 else "failure"
    logger.info(f"Created failed assets log: {len(failed)} {noun} recorded at {manifest}")
    return manifest


async def download_assets(
    *,
    session: aiohttp.ClientSession,
    assets: Sequence[dict],
    dest: str | Path,
    root: str | Path,
    batch_size: int = BATCH_SIZE,
    show_progress: bool = True,
) -> DownloadSummary:
    """
    Download every asset into `dest`, batch by batch.

    Args:
        session: aiohttp ClientSession (no auth headers are added)
        assets: Asset descriptors, each with at least `url` and `filename`
        dest: Folder receiving the binaries
        root: Export root receiving failed-assets.json
        batch_size: Maximum downloads in flight
        show_progress: Display a tqdm progress bar

    Returns:
        DownloadSummary where succeeded + len(failed) == len(assets)
    """
    summary = DownloadSummary(total=len(assets))
    if not assets:
        return summary

    dest = str(dest)
    pbar = tqdm(total=len(assets), desc="Downloading assets", unit="asset",
                disable=not show_progress)

    async def run_one(asset: dict) -> DownloadOutcome:
        outcome = await download_single(session, asset, dest)
        pbar.update(1)
        return outcome

    try:
        for batch in iter_batches(assets, batch_size):
            outcomes = await asyncio.gather(*(run_one(asset) for asset in batch))
            for outcome in outcomes:
                summary.record(outcome)
            summary.batches += 1
    finally:
        pbar.close()

    summary.manifest_path = await write_failed_assets(summary.failed, str(root))

    logger.info(f"Downloaded {summary.succeeded}/{summary.total} assets successfully")
    return summary
