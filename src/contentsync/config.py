"""Application configuration defaults and project file loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from contentsync.errors import ConfigError
from contentsync.models import DocumentTypeDef, FieldDef

DEFAULT_PROJECT_FILE = "contentsync.yaml"

EXTRA_DATA_MODES = ("warn", "ignore")
MISSING_DATA_MODES = ("skip", "fail", "skip-ignore")


@dataclass(frozen=True, slots=True)
class Flags:
    """How the loader treats extra and missing/incompatible data."""

    on_extra_data: str = "warn"
    on_missing_or_incompatible_data: str = "skip"

    def __post_init__(self) -> None:
        if self.on_extra_data not in EXTRA_DATA_MODES:
            raise ValueError(
                f"on_extra_data must be one of {EXTRA_DATA_MODES}, got {self.on_extra_data!r}"
            )
        if self.on_missing_or_incompatible_data not in MISSING_DATA_MODES:
            raise ValueError(
                "on_missing_or_incompatible_data must be one of "
                f"{MISSING_DATA_MODES}, got {self.on_missing_or_incompatible_data!r}"
            )


@dataclass(slots=True)
class SyncConfig:
    content_dir_path: Path = Path("content")
    flags: Flags = field(default_factory=Flags)
    max_concurrent_loads: int = 16

    def __post_init__(self) -> None:
        self.content_dir_path = Path(self.content_dir_path)
        if self.max_concurrent_loads < 1:
            raise ValueError("max_concurrent_loads must be at least 1")

    def resolve_content_dir(self, base_dir: Path | None = None) -> Path:
        if self.content_dir_path.is_absolute() or base_dir is None:
            return self.content_dir_path
        return base_dir / self.content_dir_path


class _FieldModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str = "string"
    required: bool = False
    default: Any = None
    options: List[str] = Field(default_factory=list)
    description: str | None = None


class _NamedFieldModel(_FieldModel):
    name: str


class _DocumentTypeModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str | None = None
    file_path_pattern: str = Field(alias="filePathPattern")
    fields: Union[List[_NamedFieldModel], Dict[str, _FieldModel]] = Field(default_factory=list)
    description: str | None = None


class _NamedDocumentTypeModel(_DocumentTypeModel):
    name: str


class _ProjectModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    content_dir_path: str = Field(default="content", alias="contentDirPath")
    on_extra_data: Literal["warn", "ignore"] = Field(default="warn", alias="onExtraData")
    on_missing_or_incompatible_data: Literal["skip", "fail", "skip-ignore"] = Field(
        default="skip", alias="onMissingOrIncompatibleData"
    )
    max_concurrent_loads: int = Field(default=16, ge=1, alias="maxConcurrentLoads")
    document_types: Union[List[_NamedDocumentTypeModel], Dict[str, _DocumentTypeModel]] = Field(
        alias="documentTypes"
    )


def _to_field_defs(fields: Union[List[_NamedFieldModel], Dict[str, _FieldModel]]) -> tuple[FieldDef, ...]:
    if isinstance(fields, dict):
        items = [(name, entry) for name, entry in fields.items()]
    else:
        items = [(entry.name, entry) for entry in fields]
    return tuple(
        FieldDef(
            name=name,
            type=entry.type,
            required=entry.required,
            default=entry.default,
            options=tuple(entry.options),
            description=entry.description,
        )
        for name, entry in items
    )


def parse_document_types(raw: Any) -> list[DocumentTypeDef]:
    """Build document type definitions from a list or a name-keyed mapping."""
    try:
        project = _ProjectModel.model_validate({"documentTypes": raw})
        return _build_document_types(project)
    except (ValidationError, ValueError) as exc:
        raise ConfigError(f"Invalid document types: {exc}") from exc


def _build_document_types(project: _ProjectModel) -> list[DocumentTypeDef]:
    if isinstance(project.document_types, dict):
        items = list(project.document_types.items())
    else:
        items = [(entry.name, entry) for entry in project.document_types]
    return [
        DocumentTypeDef(
            name=name,
            file_path_pattern=entry.file_path_pattern,
            fields=_to_field_defs(entry.fields),
            description=entry.description,
        )
        for name, entry in items
    ]


def load_project(path: Path) -> tuple[SyncConfig, list[DocumentTypeDef]]:
    """Read a YAML project file into a config and its document types.

    A relative ``contentDirPath`` is resolved against the file's directory.
    """
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read project file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Project file {path} must contain a mapping")

    try:
        project = _ProjectModel.model_validate(raw)
        document_types = _build_document_types(project)
        config = SyncConfig(
            content_dir_path=Path(project.content_dir_path),
            flags=Flags(
                on_extra_data=project.on_extra_data,
                on_missing_or_incompatible_data=project.on_missing_or_incompatible_data,
            ),
            max_concurrent_loads=project.max_concurrent_loads,
        )
    except (ValidationError, ValueError) as exc:
        raise ConfigError(f"Invalid project file {path}: {exc}") from exc

    config.content_dir_path = config.resolve_content_dir(path.parent)
    return config, document_types
