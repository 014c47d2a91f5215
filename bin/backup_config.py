#!/usr/bin/env python3
"""
Prismic Backup configuration.

A single immutable Config is built once at process start, either from a
JSON config file or from command line flags, and handed to every exporter.

JSON config example:

    {
      "repository": "my-repo",
      "access_token": "...",
      "permanent_token": "...",
      "routes": [
        {"type": "page", "path": "/", "uid": "home"},
        {"type": "page", "path": "/:uid"}
      ],
      "output": "backups"
    }
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

CUSTOM_TYPES_API = "https://customtypes.prismic.io/customtypes"
SLICES_API = "https://customtypes.prismic.io/slices"
ASSETS_API = "https://asset-api.prismic.io/assets"


@dataclass(frozen=True)
class Route:
    """One entry of the route resolver table sent to the content API."""
    type: str
    path: str
    uid: Optional[str] = None
    lang: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        d = {"type": self.type, "path": self.path}
        if self.uid is not None:
            d["uid"] = self.uid
        if self.lang is not None:
            d["lang"] = self.lang
        return d


@dataclass(frozen=True)
class Config:
    """Main application configuration."""
    repository: str
    access_token: str = ""
    permanent_token: str = ""
    routes: tuple[Route, ...] = field(default_factory=tuple)

    output_folder: str = "."
    timeout_sec: Optional[int] = None   # None: wait indefinitely
    show_progress: bool = True

    # Endpoints (overridable for testing / self-hosted proxies)
    content_api_url: Optional[str] = None
    assets_api: str = ASSETS_API
    custom_types_api: str = CUSTOM_TYPES_API
    slices_api: str = SLICES_API

    @property
    def export_root(self) -> Path:
        """Base directory for every artifact of this backup."""
        return Path(self.output_folder) / self.repository

    @property
    def content_api(self) -> str:
        if self.content_api_url:
            return self.content_api_url.rstrip("/")
        return f"https://{self.repository}.cdn.prismic.io/api/v2"

    def routes_param(self) -> Optional[str]:
        """JSON-encoded route table, or None when no routes are configured."""
        if not self.routes:
            return None
        return json.dumps([r.to_dict() for r in self.routes], separators=(",", ":"))


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def parse_routes(raw: Any) -> tuple[Route, ...]:
    """Validate a list of route dicts into Route objects."""
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError("routes must be a list of {type, path} objects")

    routes = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict) or not entry.get("type") or not entry.get("path"):
            raise ValueError(f"Route #{i} needs non-empty 'type' and 'path': {entry!r}")
        routes.append(Route(
            type=str(entry["type"]),
            path=str(entry["path"]),
            uid=entry.get("uid"),
            lang=entry.get("lang"),
        ))
    return tuple(routes)


def config_from_dict(data: dict) -> Config:
    """Build a Config from a JSON-style dict (snake_case or camelCase keys)."""
    repository = _first(data, "repository", "repositoryName", default="")
    if not str(repository).strip():
        raise ValueError("A repository name is required")

    timeout = _first(data, "timeout", "timeout_sec")

    return Config(
        repository=str(repository).strip(),
        access_token=_first(data, "access_token", "accessToken", default=""),
        permanent_token=_first(data, "permanent_token", "permanentToken", default=""),
        routes=parse_routes(data.get("routes")),
        output_folder=_first(data, "output", "output_folder", default="."),
        timeout_sec=int(timeout) if timeout is not None else None,
        show_progress=bool(data.get("show_progress", True)),
        content_api_url=data.get("content_api"),
        assets_api=data.get("assets_api", ASSETS_API),
        custom_types_api=data.get("custom_types_api", CUSTOM_TYPES_API),
        slices_api=data.get("slices_api", SLICES_API),
    )


def load_json_config(config_path: str) -> Config:
    """
    Load a Config from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't a JSON object or fails validation
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")

    return config_from_dict(data)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="prismic-backup",
        description="Export a Prismic repository's content, models and media to local files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  prismic-backup --config backup.json
  prismic-backup --repository my-repo --access_token XXX --permanent_token YYY
"""
    )

    p.add_argument("--config", type=str, help="Path to JSON config file")

    p.add_argument("--repository", type=str, help="Repository name (subdomain of prismic.io)")
    p.add_argument("--access_token", type=str, default="", help="Content API access token")
    p.add_argument("--permanent_token", type=str, default="", help="Write API permanent token")
    p.add_argument("--routes", type=str, default=None,
                   help="Route resolver table as a JSON list")
    p.add_argument("--output", dest="output_folder", type=str, default=".",
                   help="Folder in which the <repository> export root is created")
    p.add_argument("--timeout", dest="timeout_sec", type=int, default=None,
                   help="Per-request timeout in seconds (default: none)")
    p.add_argument("--no_progress", action="store_true", help="Disable the download progress bar")
    p.add_argument("--log_level", type=str, default=None,
                   help="DEBUG, INFO, WARNING or ERROR")
    return p


def parse_args(argv: Optional[Sequence[str]] = None) -> tuple[Config, argparse.Namespace]:
    """Parse command line arguments or JSON config file."""
    p = build_parser()
    args = p.parse_args(argv)

    if args.config:
        return load_json_config(args.config), args

    if not args.repository:
        p.error("--repository is required unless --config is provided")

    routes = json.loads(args.routes) if args.routes else None

    cfg = config_from_dict({
        "repository": args.repository,
        "access_token": args.access_token,
        "permanent_token": args.permanent_token,
        "routes": routes,
        "output": args.output_folder,
        "timeout": args.timeout_sec,
        "show_progress": not args.no_progress,
    })
    return cfg, args
