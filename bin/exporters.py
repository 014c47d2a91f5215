#!/usr/bin/env python3
"""
Fetch-and-persist exports.

Each export calls one remote read, skips with a warning when there is
nothing to export, otherwise writes the result under the export root.
Errors stay inside the export: they are logged and the export returns None.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def is_empty(result: Any) -> bool:
    """
    The one "nothing to export" rule: None, or a sized value of length 0.

    Applies the same way to document lists, tag lists, custom types, slices,
    asset listings and repository metadata.
    """
    if result is None:
        return True
    try:
        return len(result) == 0
    except TypeError:
        return False


def write_json(path: str | Path, data: Any) -> None:
    """Write data as indented UTF-8 JSON, creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def write_lines(path: str | Path, lines: list) -> None:
    """Write one item per line (no trailing newline)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(str(line) for line in lines), encoding="utf-8")


async def fetch_and_persist(
    *,
    label: str,
    fetch: Callable[[], Awaitable[Any]],
    root: str | Path,
    filename: str,
    write: Callable[[Path, Any], None] = write_json,
    describe: Optional[Callable[[Any, Path], str]] = None,
) -> Any:
    """
    Run one export.

    Args:
        label: Plural noun used in log lines ("documents", "tags", ...)
        fetch: Coroutine function performing the remote read
        root: Export root (created only if something is written)
        filename: Output file name under root
        write: Serializer, write_json or write_lines
        describe: Builds the success log line; defaults to a count

    Returns:
        The fetched result, or None when empty or on failure
    """
    try:
        result = await fetch()

        if is_empty(result):
            logger.warning(f"No {label} found in repository - skipping {label} export")
            return None

        path = Path(root) / filename
        await asyncio.to_thread(write, path, result)

        if describe is not None:
            logger.info(describe(result, path))
        else:
            logger.info(f"Exported {len(result)} {label} to {path}")
        return result

    except Exception as e:
        logger.error(f"{label.capitalize()} export failed: {e}")
        return None


def group_by_type(documents: list[dict]) -> dict[str, list[dict]]:
    """Group documents by their `type`, keeping input order within each type."""
    groups: dict[str, list[dict]] = {}
    for doc in documents:
        groups.setdefault(str(doc.get("type")), []).append(doc)
    return groups


async def write_documents_by_type(groups: dict[str, list[dict]], dest: str | Path) -> list[str]:
    """Write one <type>.json per group, concurrently. Returns the paths written."""
    paths = [os.path.join(str(dest), f"{doc_type}.json") for doc_type in groups]
    await asyncio.gather(*(
        asyncio.to_thread(write_json, path, docs)
        for path, docs in zip(paths, groups.values())
    ))
    return paths
