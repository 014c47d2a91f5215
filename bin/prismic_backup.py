#!/usr/bin/env python3
"""
Prismic Backup

One-shot export of a Prismic repository to local files:

    <output>/<repository>/
        repository.json        repository metadata (refs, languages, ...)
        documents.json         every document
        documents/<type>.json  documents split by custom type
        tags.txt               one tag per line
        custom-types.json
        shared-slices.json
        assets.json            media library listing
        assets/<file>          media library binaries
        failed-assets.json     assets that could not be downloaded

All exports run concurrently on one event loop. Each export contains its
own failures, so the run always finishes and reports its duration.

Usage:
    python prismic_backup.py --config backup.json
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from typing import Optional, Sequence

import aiohttp

from backup_config import Config, parse_args
from download_batch import DownloadSummary, download_assets
from exporters import fetch_and_persist, group_by_type, write_documents_by_type, write_lines
from log_setup import configure_logging
from prismic_client import ContentClient, fetch_custom_types, fetch_shared_slices, list_assets

logger = logging.getLogger(__name__)

USER_AGENT = "prismic-backup/1.0 aiohttp"


def _now() -> float:
    """Monotonic clock for elapsed-time measurement."""
    return time.perf_counter()


def open_session(cfg: Config) -> aiohttp.ClientSession:
    """Shared HTTP session for every export. Auth headers are added per request."""
    connector = aiohttp.TCPConnector(limit=50, ttl_dns_cache=300, use_dns_cache=True)
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=cfg.timeout_sec),
        headers={"User-Agent": USER_AGENT},
    )


class PrismicBackup:
    """Exports one repository into cfg.export_root."""

    def __init__(self, cfg: Config, session: aiohttp.ClientSession):
        self.cfg = cfg
        self.session = session
        self.client = ContentClient(session, cfg)
        self.root = cfg.export_root

    async def export_repository_details(self) -> Optional[dict]:
        return await fetch_and_persist(
            label="repository metadata",
            fetch=self.client.get_repository,
            root=self.root,
            filename="repository.json",
            describe=lambda repo, path: f"Exported repository metadata to {path}",
        )

    async def export_documents(self) -> Optional[list[dict]]:
        """All documents in documents.json, then one file per document type."""
        docs = await fetch_and_persist(
            label="documents",
            fetch=self.client.get_all_documents,
            root=self.root,
            filename="documents.json",
        )
        if docs is None:
            return None

        try:
            groups = group_by_type(docs)
            dest = self.root / "documents"
            await write_documents_by_type(groups, dest)
            logger.info(f"Exported documents by type ({len(groups)} types) to {dest}")
        except Exception as e:
            logger.error(f"Documents export failed: {e}")
            return None

        return docs

    async def export_tags(self) -> Optional[list[str]]:
        return await fetch_and_persist(
            label="tags",
            fetch=self.client.get_tags,
            root=self.root,
            filename="tags.txt",
            write=write_lines,
        )

    async def export_custom_types(self) -> Optional[list[dict]]:
        return await fetch_and_persist(
            label="custom types",
            fetch=lambda: fetch_custom_types(self.session, self.cfg),
            root=self.root,
            filename="custom-types.json",
        )

    async def export_shared_slices(self) -> Optional[list[dict]]:
        return await fetch_and_persist(
            label="shared slices",
            fetch=lambda: fetch_shared_slices(self.session, self.cfg),
            root=self.root,
            filename="shared-slices.json",
        )

    async def export_assets_list(self) -> Optional[list[dict]]:
        return await fetch_and_persist(
            label="assets",
            fetch=lambda: list_assets(self.session, self.cfg),
            root=self.root,
            filename="assets.json",
        )

    async def download_assets(self, assets: Optional[list[dict]] = None) -> Optional[DownloadSummary]:
        """
        Download assets into <root>/assets.

        Without an explicit list the media library is listed first (and
        assets.json written); if that yields nothing the download is skipped.
        """
        try:
            if assets is None:
                logger.info("No assets provided, fetching assets list...")
                assets = await self.export_assets_list()
                if assets is None:
                    return None

            if len(assets) == 0:
                logger.warning("No assets found in repository - skipping assets export")
                return DownloadSummary()

            return await download_assets(
                session=self.session,
                assets=assets,
                dest=self.root / "assets",
                root=self.root,
                show_progress=self.cfg.show_progress,
            )
        except Exception as e:
            logger.error(f"Assets download process failed: {e}")
            return None

    async def run(self) -> float:
        """Run every export concurrently. Returns elapsed seconds."""
        logger.info("Backup started...")
        start = _now()

        await asyncio.gather(
            self.export_repository_details(),
            self.export_documents(),
            self.export_tags(),
            self.export_custom_types(),
            self.export_shared_slices(),
            self.download_assets(),
        )

        elapsed = _now() - start
        logger.info(f"Backup completed in {elapsed:.3f}s")
        return elapsed


async def run_backup(cfg: Config) -> float:
    async with open_session(cfg) as session:
        return await PrismicBackup(cfg, session).run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point. Returns the process exit status."""
    try:
        cfg, args = parse_args(argv)
    except (ValueError, FileNotFoundError) as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(args.log_level)
    logger.info(f"Backing up repository '{cfg.repository}' to {cfg.export_root}")

    try:
        asyncio.run(run_backup(cfg))
    except KeyboardInterrupt:
        logger.warning("Interrupted - backup incomplete")
        return 130
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
