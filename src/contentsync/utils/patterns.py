"""Glob-style path patterns for matching content files."""

from __future__ import annotations

import re
from functools import lru_cache


def normalize_relative_path(path: str) -> str:
    """Return ``path`` with forward slashes and no leading ``./``."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _translate(pattern: str) -> str:
    """Translate a glob pattern into a regular expression body.

    ``*`` stays inside one path segment, ``**`` spans segments and ``**/``
    may match no directory at all. ``?``, ``[...]`` and ``{a,b}`` behave as
    in common shell globs. Wildcards at the start of a segment never match
    a leading dot, so ``posts/*.md`` skips ``posts/.draft.md`` while
    ``posts/.*.md`` matches it.
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    # One entry per open brace: whether it opened at the start of a segment.
    braces: list[bool] = []
    while i < n:
        char = pattern[i]
        previous = pattern[i - 1] if i else "/"
        segment_start = previous == "/" or (bool(braces) and previous in "{," and braces[-1])
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if not segment_start:
                    out.append(".*")
                elif i < n and pattern[i] == "/":
                    i += 1
                    out.append(r"(?:(?!\.)[^/]*/)*")
                else:
                    out.append(r"(?!\.)(?:[^/]*/(?!\.))*[^/]*")
                continue
            out.append(r"(?!\.)[^/]*" if segment_start else "[^/]*")
        elif char == "?":
            out.append(r"(?!\.)[^/]" if segment_start else "[^/]")
        elif char == "[":
            if segment_start:
                out.append(r"(?!\.)")
            end = pattern.find("]", i + 2 if pattern.startswith("[!", i) else i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end
        elif char == "{":
            braces.append(segment_start)
            out.append("(?:")
        elif char == "," and braces:
            out.append("|")
        elif char == "}" and braces:
            braces.pop()
            out.append(")")
        else:
            out.append(re.escape(char))
        i += 1

    if braces:
        raise ValueError(f"Unbalanced braces in pattern {pattern!r}")
    return "".join(out)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a glob pattern to a regex matching whole relative paths."""
    return re.compile(_translate(normalize_relative_path(pattern)) + r"\Z", re.DOTALL)


def match_path(relative_file_path: str, pattern: str) -> bool:
    return compile_pattern(pattern).match(normalize_relative_path(relative_file_path)) is not None
