"""Shared fixtures: a local aiohttp server impersonating the Prismic APIs."""

import asyncio
import math
from typing import Optional

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from backup_config import Config


class FakePrismic:
    """In-memory Prismic: content API, write APIs, asset listing and file CDN."""

    def __init__(self):
        self.repository = {
            "refs": [
                {"id": "master", "ref": "master-ref-1", "label": "Master", "isMasterRef": True},
                {"id": "preview", "ref": "preview-ref", "label": "Preview"},
            ],
            "languages": [{"id": "en-us", "name": "English - United States"}],
            "types": {"page": "Page", "post": "Post"},
            "tags": ["news", "featured"],
            "forms": {},
        }
        self.documents: list[dict] = []
        self.remote_tags: Optional[list[str]] = None
        self.custom_types: list = [{"id": "page", "label": "Page"}]
        self.slices: list = [{"id": "hero", "name": "Hero"}]
        # cursor (None for the first page) -> {"items": [...], "cursor": ...}
        self.asset_pages: dict[Optional[str], dict] = {None: {"items": []}}
        self.files: dict[str, bytes] = {}
        self.status_overrides: dict[str, int] = {}
        self.file_delay = 0.0

        self.requests: list[tuple] = []
        self.events: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.base_url = ""

    # -- helpers -------------------------------------------------------------

    def asset(self, name: str, display: Optional[str] = None, content: Optional[bytes] = None,
              query: str = "auto=compress,format") -> dict:
        """Register a downloadable file and return its asset descriptor."""
        if content is not None:
            self.files[name] = content
        return {
            "id": f"id-{name}",
            "url": f"{self.base_url}/files/{name}?{query}",
            "filename": display or name,
            "kind": "image",
        }

    def requests_to(self, path: str) -> list[tuple]:
        return [r for r in self.requests if r[0] == path]

    # -- handlers ------------------------------------------------------------

    @web.middleware
    async def record(self, request: web.Request, handler):
        self.requests.append((request.path, dict(request.query), request.headers.copy()))
        status = self.status_overrides.get(request.path)
        if status is not None:
            return web.Response(status=status)
        return await handler(request)

    async def get_repository(self, request):
        return web.json_response(self.repository)

    async def search_documents(self, request):
        page = int(request.query.get("page", "1"))
        size = int(request.query.get("pageSize", "20"))
        total_pages = math.ceil(len(self.documents) / size)
        results = self.documents[(page - 1) * size:page * size]
        return web.json_response({
            "page": page,
            "results_per_page": size,
            "total_results_size": len(self.documents),
            "total_pages": total_pages,
            "results": results,
        })

    async def get_tags(self, request):
        return web.json_response(self.remote_tags or [])

    async def get_custom_types(self, request):
        return web.json_response(self.custom_types)

    async def get_slices(self, request):
        return web.json_response(self.slices)

    async def get_assets(self, request):
        page = self.asset_pages.get(request.query.get("cursor"))
        if page is None:
            return web.Response(status=400, text="unknown cursor")
        return web.json_response(page)

    async def get_file(self, request):
        name = request.match_info["name"]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.events.append(("start", name))
        try:
            if self.file_delay:
                await asyncio.sleep(self.file_delay)
            if name not in self.files:
                return web.Response(status=404)
            return web.Response(body=self.files[name], content_type="application/octet-stream")
        finally:
            self.in_flight -= 1
            self.events.append(("end", name))

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self.record])
        app.router.add_get("/api/v2", self.get_repository)
        app.router.add_get("/api/v2/documents/search", self.search_documents)
        app.router.add_get("/api/tags", self.get_tags)
        app.router.add_get("/customtypes", self.get_custom_types)
        app.router.add_get("/slices", self.get_slices)
        app.router.add_get("/assets", self.get_assets)
        app.router.add_get("/files/{name}", self.get_file)
        return app


@pytest_asyncio.fixture
async def prismic():
    fake = FakePrismic()
    server = TestServer(fake.app())
    await server.start_server()
    fake.base_url = str(server.make_url("/")).rstrip("/")
    try:
        yield fake
    finally:
        await server.close()


@pytest_asyncio.fixture
async def session():
    async with aiohttp.ClientSession() as s:
        yield s


@pytest.fixture
def cfg(prismic, tmp_path) -> Config:
    base = prismic.base_url
    return Config(
        repository="demo-repo",
        access_token="read-token",
        permanent_token="write-token",
        output_folder=str(tmp_path),
        show_progress=False,
        content_api_url=f"{base}/api/v2",
        assets_api=f"{base}/assets",
        custom_types_api=f"{base}/customtypes",
        slices_api=f"{base}/slices",
    )
