"""Parsers turning content file bytes into plain field mappings.

Markdown and MDX files carry YAML front matter between ``---`` fences
followed by a body; JSON and YAML files hold a single top-level object.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict

import yaml

from contentsync.errors import DataIncompatibilityError
from contentsync.models import RawDocumentData

FRONTMATTER_FENCE = "---"


class ContentParseError(Exception):
    """File content is malformed and cannot be parsed at all."""


BODY_KEY = "body"

MARKDOWN_CONTENT_TYPES = ("markdown", "mdx")


@dataclass(slots=True)
class ParsedFile:
    """Parsed field mapping plus the keys the parser added itself."""

    data: Dict[str, Any]
    raw: RawDocumentData
    generated_keys: frozenset[str] = frozenset()


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split ``text`` into front matter source (if any) and body."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONTMATTER_FENCE:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_FENCE:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])
    raise ContentParseError("Front matter is not terminated by '---'")


def _load_yaml(source: str) -> Any:
    try:
        return yaml.safe_load(source)
    except yaml.YAMLError as exc:
        raise ContentParseError(f"Invalid YAML: {exc}") from exc


def _parse_markdown(relative_file_path: str, text: str) -> Dict[str, Any]:
    frontmatter, body = split_frontmatter(text)
    data = _load_yaml(frontmatter) if frontmatter is not None else None
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DataIncompatibilityError(relative_file_path, "front matter is not a mapping")
    data = dict(data)
    data[BODY_KEY] = body
    return data


def _parse_json(relative_file_path: str, text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ContentParseError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DataIncompatibilityError(relative_file_path, "JSON content is not an object")
    return data


def _parse_yaml(relative_file_path: str, text: str) -> Dict[str, Any]:
    data = _load_yaml(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DataIncompatibilityError(relative_file_path, "YAML content is not a mapping")
    return data


PARSERS: Dict[str, tuple[str, Callable[[str, str], Dict[str, Any]]]] = {
    ".md": ("markdown", _parse_markdown),
    ".mdx": ("mdx", _parse_markdown),
    ".json": ("data", _parse_json),
    ".yaml": ("data", _parse_yaml),
    ".yml": ("data", _parse_yaml),
}


def flatten_path(relative_file_path: str) -> str:
    """Strip the extension and a trailing ``index`` segment."""
    path = PurePosixPath(relative_file_path)
    stem = path.with_suffix("")
    parts = list(stem.parts)
    if parts and parts[-1] == "index":
        parts.pop()
    return "/".join(parts)


def make_raw_data(relative_file_path: str, content_type: str) -> RawDocumentData:
    path = PurePosixPath(relative_file_path)
    return RawDocumentData(
        source_file_path=relative_file_path,
        source_file_name=path.name,
        source_file_dir=path.parent.as_posix(),
        content_type=content_type,
        flattened_path=flatten_path(relative_file_path),
    )


def parse_file(content_dir: Path, relative_file_path: str) -> ParsedFile:
    """Read and parse one content file.

    Raises ``OSError`` when the file cannot be read, :class:`ContentParseError`
    for malformed content and :class:`DataIncompatibilityError` when the
    content parses but cannot be a document.
    """
    suffix = PurePosixPath(relative_file_path).suffix.lower()
    if suffix not in PARSERS:
        raise DataIncompatibilityError(relative_file_path, f"unsupported file type {suffix or '(none)'}")
    content_type, parser = PARSERS[suffix]

    try:
        text = (Path(content_dir) / relative_file_path).read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ContentParseError(f"File is not valid UTF-8: {exc}") from exc
    # YAML allows keys such as ``2024`` or ``yes``; documents are keyed by name.
    data = {str(key): value for key, value in parser(relative_file_path, text).items()}
    generated = frozenset({BODY_KEY}) if content_type in MARKDOWN_CONTENT_TYPES else frozenset()
    return ParsedFile(
        data=data,
        raw=make_raw_data(relative_file_path, content_type),
        generated_keys=generated,
    )
