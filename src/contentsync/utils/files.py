"""Utility helpers for working with content files."""

from __future__ import annotations

import hashlib
from pathlib import Path, PurePosixPath
from typing import Iterator


def iter_content_files(content_dir: Path) -> Iterator[str]:
    """Yield every file below ``content_dir`` as a sorted relative posix path."""
    root = Path(content_dir)
    if not root.is_dir():
        return
    for item in sorted(root.rglob("*")):
        if item.is_file():
            yield item.relative_to(root).as_posix()


def to_relative_path(path: str | Path, content_dir: Path) -> str | None:
    """Express ``path`` relative to ``content_dir``; ``None`` if it lies outside."""
    candidate = Path(path)
    if not candidate.is_absolute():
        return PurePosixPath(candidate.as_posix()).as_posix()
    try:
        return candidate.relative_to(content_dir).as_posix()
    except ValueError:
        return None


def compute_sha256(data: bytes) -> str:
    """Compute SHA256 hex digest for a byte string."""
    return hashlib.sha256(data).hexdigest()
