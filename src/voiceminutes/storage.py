"""Storage and naming utilities."""

from __future__ import annotations

import os
import re
from datetime import datetime

UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|\r\n]')
MAX_BASENAME_LENGTH = 30


def timestamp_slug(dt: datetime | None = None) -> str:
    now = dt or datetime.now()
    return now.strftime("%Y-%m-%d_%H%M%S")


def fallback_basename(dt: datetime | None = None) -> str:
    return f"{timestamp_slug(dt)}--meeting_summary"


def sanitize_filename(name: str, max_length: int = MAX_BASENAME_LENGTH) -> str:
    return UNSAFE_FILENAME_CHARS.sub("_", name)[:max_length]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def build_document_path(output_dir: str, basename: str) -> str:
    ensure_dir(output_dir)
    return os.path.join(output_dir, f"{basename}.pdf")
