"""Document loading: parse a content file and validate it against its type."""

from __future__ import annotations

import asyncio
import datetime
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Protocol, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from contentsync.config import Flags
from contentsync.errors import DataIncompatibilityError, FatalLoadError
from contentsync.ingestion.parsers import ContentParseError, parse_file
from contentsync.models import Document, DocumentTypeDef, FieldDef

LOGGER = logging.getLogger(__name__)

_PYTHON_TYPES: Dict[str, Any] = {
    "string": str,
    "markdown": str,
    "number": float,
    "boolean": bool,
    "date": datetime.date,
    "list": List[Any],
    "json": Any,
}


class DocumentLoader(Protocol):
    async def __call__(
        self,
        content_dir: Path,
        type_def: DocumentTypeDef,
        relative_file_path: str,
        flags: Flags,
    ) -> Optional[Document]: ...


def _annotation_for(field: FieldDef) -> Any:
    if field.type == "enum":
        annotation: Any = Literal[field.options]
    elif field.type == "number":
        annotation = int | float
    elif field.type == "date":
        annotation = datetime.datetime | datetime.date
    else:
        annotation = _PYTHON_TYPES[field.type]
    return annotation if field.required else Optional[annotation]


@lru_cache(maxsize=None)
def build_document_model(type_def: DocumentTypeDef) -> Type[BaseModel]:
    """Build (once per type) the pydantic model validating a document's fields.

    Declared fields are stored under positional attribute names and keep the
    declared name as alias, so any field name is allowed. Undeclared keys are
    kept as extras.
    """
    definitions: Dict[str, Any] = {}
    for index, field in enumerate(type_def.fields):
        default = ... if field.required else field.default
        definitions[f"field_{index}"] = (_annotation_for(field), Field(default, alias=field.name))
    return create_model(
        f"{type_def.name}Document",
        __config__=ConfigDict(extra="allow", populate_by_name=False),
        **definitions,
    )


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)


def validate_fields(
    type_def: DocumentTypeDef,
    relative_file_path: str,
    data: Dict[str, Any],
    generated_keys: Iterable[str] = (),
) -> tuple[Dict[str, Any], list[str]]:
    """Validate ``data`` for ``type_def``.

    Returns the validated field values (declared fields first, extras
    after) and the names of the undeclared fields. Keys in
    ``generated_keys`` were added by the parser and are never reported.
    """
    model = build_document_model(type_def)
    try:
        instance = model.model_validate(data)
    except ValidationError as exc:
        raise DataIncompatibilityError(relative_file_path, _format_validation_error(exc)) from exc

    known = {field.name for field in type_def.fields} | set(generated_keys)
    values = instance.model_dump(by_alias=True)
    extra = sorted(str(key) for key in data if key not in known)
    return values, extra


def _read_document(content_dir: Path, type_def: DocumentTypeDef, relative_file_path: str) -> tuple[Document, list[str]]:
    parsed = parse_file(content_dir, relative_file_path)
    values, extra = validate_fields(type_def, relative_file_path, parsed.data, parsed.generated_keys)
    document = Document(id=relative_file_path, type_name=type_def.name, fields=values, raw=parsed.raw)
    return document, extra


async def load_document(
    content_dir: Path,
    type_def: DocumentTypeDef,
    relative_file_path: str,
    flags: Flags,
) -> Optional[Document]:
    """Load one content file as a document of ``type_def``.

    Returns ``None`` when the file is omitted, raises :class:`FatalLoadError`
    when synchronization has to stop.
    """
    try:
        document, extra = await asyncio.to_thread(_read_document, content_dir, type_def, relative_file_path)
    except FileNotFoundError:
        LOGGER.debug("File disappeared before it could be read: %s", relative_file_path)
        return None
    except DataIncompatibilityError as exc:
        mode = flags.on_missing_or_incompatible_data
        if mode == "fail":
            raise FatalLoadError(relative_file_path, exc.reason) from exc
        if mode == "skip":
            LOGGER.warning(
                "Skipping %s (document type %s): %s", relative_file_path, type_def.name, exc.reason
            )
        return None
    except ContentParseError as exc:
        raise FatalLoadError(relative_file_path, str(exc)) from exc
    except OSError as exc:
        raise FatalLoadError(relative_file_path, str(exc)) from exc

    if extra and flags.on_extra_data == "warn":
        LOGGER.warning(
            "Extra fields on %s not defined for document type %s: %s",
            relative_file_path,
            type_def.name,
            ", ".join(extra),
        )
    return document
