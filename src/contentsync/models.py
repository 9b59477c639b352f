"""Core ContentSync data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

FIELD_TYPES = ("string", "number", "boolean", "date", "list", "json", "markdown", "enum")


@dataclass(frozen=True, slots=True)
class FieldDef:
    """Declared field of a document type."""

    name: str
    type: str = "string"
    required: bool = False
    default: Any = field(default=None, hash=False)
    options: Tuple[str, ...] = ()
    description: str | None = None

    def __post_init__(self) -> None:
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unknown field type {self.type!r} for field {self.name!r}")
        if self.type == "enum" and not self.options:
            raise ValueError(f"Enum field {self.name!r} needs at least one option")


@dataclass(frozen=True, slots=True)
class DocumentTypeDef:
    """Named document type and the file path pattern selecting its files."""

    name: str
    file_path_pattern: str
    fields: Tuple[FieldDef, ...] = ()
    description: str | None = None


@dataclass(frozen=True, slots=True)
class RawDocumentData:
    """Source file details attached to every document."""

    source_file_path: str
    source_file_name: str
    source_file_dir: str
    content_type: str
    flattened_path: str


@dataclass(frozen=True, slots=True)
class Document:
    """One successfully loaded content file."""

    id: str
    type_name: str
    fields: Dict[str, Any]
    raw: RawDocumentData

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]


@dataclass(frozen=True, slots=True)
class SchemaDef:
    """Static schema metadata handed to cache consumers."""

    document_types: Dict[str, DocumentTypeDef]
    hash: str


@dataclass(frozen=True, slots=True)
class Cache:
    """Read-only snapshot of the synchronized documents."""

    documents: Tuple[Document, ...]
    schema: SchemaDef
    _by_id: Dict[str, Document] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {doc.id: doc for doc in self.documents})

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._by_id

    @property
    def ids(self) -> list[str]:
        return [doc.id for doc in self.documents]

    def get(self, document_id: str) -> Optional[Document]:
        return self._by_id.get(document_id)

    def of_type(self, type_name: str) -> list[Document]:
        return [doc for doc in self.documents if doc.type_name == type_name]
