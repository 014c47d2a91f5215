"""
Prismic Backup console logging.

Timestamped, severity-colored output on stderr via Rich, routed through
tqdm so log lines and download progress bars share the terminal. Every module logs
through ``logging.getLogger(__name__)``; call ``configure_logging()`` once at
startup.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text
from tqdm import tqdm

LOG_LEVEL_ENV = "PRISMIC_BACKUP_LOG_LEVEL"
DEFAULT_LEVEL = "INFO"


class TqdmStream:
    """stderr proxy that writes through tqdm so live progress bars are redrawn, not torn."""

    def write(self, text: str) -> int:
        tqdm.write(text, file=sys.stderr, end="")
        return len(text)

    def flush(self) -> None:
        sys.stderr.flush()

    def isatty(self) -> bool:
        return sys.stderr.isatty()

    def fileno(self) -> int:
        return sys.stderr.fileno()


console = Console(file=TqdmStream())

_MESSAGE_STYLES = {
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}


class SeverityRichHandler(RichHandler):
    """RichHandler that also tints the message text for warnings and errors."""

    def render_message(self, record: logging.LogRecord, message: str):
        rendered = super().render_message(record, message)
        style = _MESSAGE_STYLES.get(record.levelno)
        if style and isinstance(rendered, Text):
            rendered.stylize(style)
        return rendered


def resolve_level(level: Optional[str] = None) -> int:
    """Return a logging level from an explicit name or the environment."""
    name = (level or os.getenv(LOG_LEVEL_ENV, DEFAULT_LEVEL)).upper()
    return getattr(logging, name, logging.INFO)


def configure_logging(level: Optional[str] = None) -> None:
    """Install the Rich handler on the root logger (idempotent)."""
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, SeverityRichHandler):
            break
    else:
        root.handlers.clear()
        handler = SeverityRichHandler(
            console=console,
            show_path=False,
            markup=False,
            log_time_format="[%Y-%m-%dT%H:%M:%S.%f]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)

    root.setLevel(resolve_level(level))
    # aiohttp's access/client loggers are noisy at INFO
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
