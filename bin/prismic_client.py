#!/usr/bin/env python3
"""
Prismic HTTP access.

- get_json() / authenticated_get(): GET helpers that turn any non-2xx
  response into APIStatusError
- ContentClient: repository metadata, documents and tags (read token)
- fetch_custom_types() / fetch_shared_slices(): write API reads
- list_assets(): cursor-paginated media library listing
"""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Any, Optional

import aiohttp

from backup_config import Config

logger = logging.getLogger(__name__)

DOCUMENTS_PAGE_SIZE = 100
ASSETS_PAGE_SIZE = 1000


class APIStatusError(Exception):
    """A request completed with a non-success HTTP status."""

    def __init__(self, status: int, reason: Optional[str] = None):
        if not reason:
            try:
                reason = HTTPStatus(status).phrase
            except ValueError:
                reason = "Unknown"
        self.status = status
        self.reason = reason
        super().__init__(f"API returned {status} {reason}")


def is_success(status: int) -> bool:
    return 200 <= status < 300


def raise_for_status(response: aiohttp.ClientResponse) -> None:
    if not is_success(response.status):
        raise APIStatusError(response.status, response.reason)


async def get_json(
    session: aiohttp.ClientSession,
    url: str,
    params: Optional[dict[str, str]] = None,
    headers: Optional[dict[str, str]] = None,
) -> Any:
    """GET a URL and decode its JSON body."""
    async with session.get(url, params=params, headers=headers) as response:
        raise_for_status(response)
        # Some endpoints answer with text/plain; don't enforce the content type
        return await response.json(content_type=None)


def auth_headers(cfg: Config) -> dict[str, str]:
    return {
        "repository": cfg.repository,
        "authorization": f"Bearer {cfg.permanent_token}",
    }


async def authenticated_get(
    session: aiohttp.ClientSession,
    cfg: Config,
    url: str,
    params: Optional[dict[str, str]] = None,
) -> Any:
    """GET with the repository and bearer-token headers the write APIs expect."""
    return await get_json(session, url, params=params, headers=auth_headers(cfg))


# =============================================================================
# CONTENT API
# =============================================================================

class ContentClient:
    """Minimal read-only client for the Prismic content API (v2)."""

    def __init__(self, session: aiohttp.ClientSession, cfg: Config):
        self.session = session
        self.cfg = cfg
        # One metadata fetch shared by every concurrent caller
        self._repository_task: Optional[asyncio.Task] = None

    def _params(self, **extra: Any) -> dict[str, str]:
        params = {k: str(v) for k, v in extra.items() if v is not None}
        if self.cfg.access_token:
            params["access_token"] = self.cfg.access_token
        return params

    async def _fetch_repository(self) -> dict:
        return await get_json(self.session, self.cfg.content_api, params=self._params())

    async def get_repository(self) -> dict:
        """Repository metadata: refs, languages, types, tags, forms..."""
        if self._repository_task is None:
            self._repository_task = asyncio.ensure_future(self._fetch_repository())
        return await self._repository_task

    async def get_master_ref(self) -> str:
        repo = await self.get_repository()
        for ref in repo.get("refs") or []:
            if ref.get("isMasterRef"):
                return ref["ref"]
        raise ValueError("Repository metadata has no master ref")

    async def get_all_documents(self) -> list[dict]:
        """Every published document on the master ref, walking all result pages."""
        ref = await self.get_master_ref()
        url = f"{self.cfg.content_api}/documents/search"
        routes = self.cfg.routes_param()

        documents: list[dict] = []
        page = 1
        while True:
            params = self._params(ref=ref, page=page, pageSize=DOCUMENTS_PAGE_SIZE, routes=routes)
            data = await get_json(self.session, url, params=params)
            documents.extend(data.get("results") or [])

            total_pages = int(data.get("total_pages") or 0)
            logger.debug(f"Fetched documents page {page}/{total_pages}")
            if page >= total_pages:
                break
            page += 1

        return documents

    async def get_tags(self) -> list[str]:
        """Tags from the repository's tags form if advertised, else its tags list."""
        repo = await self.get_repository()
        form = (repo.get("forms") or {}).get("tags")
        if form and form.get("action"):
            return await get_json(self.session, form["action"], params=self._params())
        return list(repo.get("tags") or [])


# =============================================================================
# CUSTOM TYPES / SLICES / ASSETS APIs
# =============================================================================

async def fetch_custom_types(session: aiohttp.ClientSession, cfg: Config) -> list[dict]:
    return await authenticated_get(session, cfg, cfg.custom_types_api)


async def fetch_shared_slices(session: aiohttp.ClientSession, cfg: Config) -> list[dict]:
    return await authenticated_get(session, cfg, cfg.slices_api)


async def list_assets(
    session: aiohttp.ClientSession,
    cfg: Config,
    page_size: int = ASSETS_PAGE_SIZE,
) -> list[dict]:
    """
    Retrieve every asset descriptor of the media library.

    Follows the `cursor` of each page until a page comes back without one.
    Any non-success page aborts the whole listing (APIStatusError); no
    partial list is returned.

    Returns:
        Asset descriptors in API order
    """
    items: list[dict] = []
    cursor: Optional[str] = None
    pages = 0

    while True:
        params = {"limit": str(page_size)}
        if cursor:
            params["cursor"] = cursor

        data = await authenticated_get(session, cfg, cfg.assets_api, params=params)
        pages += 1
        items.extend(data.get("items") or [])

        cursor = data.get("cursor")
        if not cursor:
            break

    logger.debug(f"Listed {len(items)} assets in {pages} page(s)")
    return items
