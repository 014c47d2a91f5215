#!/usr/bin/env python3
"""
Prismic Backup Single Asset Download

Download functions for one media-library asset.

This module is used by download_batch.py and provides:
- canonical_url(): strip query parameters (imgix transforms, signatures)
- filename_from_url(): on-disk name derived from the asset URL
- download_via_http_get(): unauthenticated GET returning the raw body
- download_single(): download + save, never raises
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

import aiohttp

from prismic_client import raise_for_status

logger = logging.getLogger(__name__)


@dataclass
class DownloadOutcome:
    """Result of a single download attempt."""
    asset: dict
    success: bool
    file_path: Optional[str]
    error: Optional[str] = None
    bytes_downloaded: int = 0


def canonical_url(url: str) -> str:
    """Drop everything from the first '?' on."""
    return str(url).split("?", 1)[0]


def filename_from_url(url: str) -> str:
    """
    Derive the local filename for an asset.

    The last path segment of the canonical URL, percent-decoded. Using the
    URL rather than the asset's display `filename` keeps files matchable
    against the asset URLs embedded in exported documents.

    Args:
        url: Asset URL, with or without query parameters

    Returns:
        Filename (e.g. "abc123_photo.png")

    Raises:
        ValueError: The segment is empty, "." or "..", or decodes to
            something containing a path separator
    """
    name = unquote(canonical_url(url).split("/")[-1])
    separators = [sep for sep in ("/", os.sep, os.altsep) if sep]
    if name in ("", ".", "..") or any(sep in name for sep in separators):
        raise ValueError(f"Cannot derive a filename from URL: {url}")
    return name


async def download_via_http_get(session: aiohttp.ClientSession, url: str) -> bytes:
    """
    Download content via a plain HTTP GET (no auth headers).

    Raises:
        APIStatusError: Non-success status
        aiohttp.ClientError: Connection level failure
    """
    async with session.get(url) as response:
        raise_for_status(response)
        return await response.read()


def save_asset(content: bytes, file_path: str) -> int:
    """Write content to file_path, overwriting any previous file. Returns bytes written."""
    os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
    with open(file_path, "wb") as f:
        f.write(content)
    return len(content)


async def download_single(
    session: aiohttp.ClientSession,
    asset: dict,
    dest: str,
) -> DownloadOutcome:
    """
    Download one asset into `dest` and report the outcome.

    Failures (malformed descriptor, unusable filename, bad status, network
    error, write error) are logged and returned in the outcome, never
    raised, so sibling downloads carry on.

    Args:
        session: aiohttp ClientSession
        asset: Asset descriptor; only `url` and `filename` are read
        dest: Destination folder

    Returns:
        DownloadOutcome carrying the original descriptor
    """
    display_name = None
    file_path = None

    try:
        if not isinstance(asset, dict):
            raise TypeError(f"Asset descriptor is not an object: {asset!r}")
        display_name = asset.get("filename")

        url = canonical_url(asset["url"])
        file_path = os.path.join(dest, filename_from_url(url))

        content = await download_via_http_get(session, url)
        written = await asyncio.to_thread(save_asset, content, file_path)

        logger.info(f'Downloaded "{display_name}" to {dest}')
        return DownloadOutcome(asset=asset, success=True, file_path=file_path,
                               bytes_downloaded=written)

    except Exception as e:
        if isinstance(e, asyncio.TimeoutError):
            error = "Request Timeout"
        elif isinstance(e, KeyError):
            error = f"Asset has no {e} field"
        else:
            error = str(e) or type(e).__name__
        logger.error(f'Failed to download "{display_name}": {error}')
        return DownloadOutcome(asset=asset, success=False, file_path=file_path, error=error)
