"""Document type registry and path-to-type resolution."""

from __future__ import annotations

import json
import re
from typing import Dict, Iterable, Iterator

from contentsync.models import DocumentTypeDef, SchemaDef
from contentsync.utils.files import compute_sha256
from contentsync.utils.patterns import compile_pattern, normalize_relative_path


class TypeRegistry:
    """Immutable, ordered lookup table of document types."""

    def __init__(self, document_types: Iterable[DocumentTypeDef]) -> None:
        types: Dict[str, DocumentTypeDef] = {}
        for type_def in document_types:
            if type_def.name in types:
                raise ValueError(f"Duplicate document type name: {type_def.name}")
            types[type_def.name] = type_def
        self._types = types
        self._matchers: Dict[str, re.Pattern[str]] = {
            name: compile_pattern(type_def.file_path_pattern) for name, type_def in types.items()
        }

    def __iter__(self) -> Iterator[DocumentTypeDef]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    @property
    def names(self) -> list[str]:
        return list(self._types)

    @property
    def patterns(self) -> Dict[str, str]:
        """Name to file path pattern mapping, in registration order."""
        return {name: type_def.file_path_pattern for name, type_def in self._types.items()}

    def get(self, name: str) -> DocumentTypeDef:
        return self._types[name]

    def pattern_for(self, name: str) -> str:
        return self._types[name].file_path_pattern

    def matches(self, name: str, relative_file_path: str) -> bool:
        return self._matchers[name].match(relative_file_path) is not None


def resolve_type(relative_file_path: str, registry: TypeRegistry) -> str | None:
    """Return the first registered type whose pattern matches the path."""
    path = normalize_relative_path(relative_file_path)
    for name in registry.names:
        if registry.matches(name, path):
            return name
    return None


def make_schema(registry: TypeRegistry) -> SchemaDef:
    """Build the static schema metadata shipped with every cache snapshot."""
    canonical = [
        {
            "name": type_def.name,
            "filePathPattern": type_def.file_path_pattern,
            "fields": [
                {
                    "name": field.name,
                    "type": field.type,
                    "required": field.required,
                    "default": field.default,
                    "options": list(field.options),
                }
                for field in type_def.fields
            ],
        }
        for type_def in registry
    ]
    payload = json.dumps(canonical, sort_keys=True, default=str).encode("utf-8")
    return SchemaDef(
        document_types={type_def.name: type_def for type_def in registry},
        hash=compute_sha256(payload),
    )
