"""Command line interface for ContentSync."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from contentsync.config import DEFAULT_PROJECT_FILE, Flags, SyncConfig, load_project
from contentsync.errors import ConfigError, ContentSyncError
from contentsync.models import Cache
from contentsync.schema.registry import TypeRegistry
from contentsync.sync.source import fetch_data


console = Console()
app = typer.Typer(help="ContentSync - keep an in-memory document cache in sync with a content directory")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load(
    config_path: Path,
    content_dir: Optional[Path],
    on_extra_data: Optional[str],
    on_missing_or_incompatible_data: Optional[str],
) -> tuple[SyncConfig, TypeRegistry]:
    try:
        config, document_types = load_project(config_path)
        flags = Flags(
            on_extra_data=on_extra_data or config.flags.on_extra_data,
            on_missing_or_incompatible_data=(
                on_missing_or_incompatible_data or config.flags.on_missing_or_incompatible_data
            ),
        )
        registry = TypeRegistry(document_types)
    except (ConfigError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    config = replace(config, flags=flags)
    if content_dir is not None:
        config.content_dir_path = content_dir
    if not config.content_dir_path.is_dir():
        raise typer.BadParameter(f"Content directory not found: {config.content_dir_path}")
    return config, registry


def _summary(cache: Cache) -> str:
    counts = ", ".join(
        f"{name}: {len(cache.of_type(name))}" for name in cache.schema.document_types
    )
    return f"{len(cache)} documents ({counts})" if counts else f"{len(cache)} documents"


def _render_cache(cache: Cache) -> None:
    if not len(cache):
        console.print("[yellow]No documents found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Document")
    table.add_column("Type")
    table.add_column("Title")

    for document in sorted(cache, key=lambda doc: doc.id):
        title = document.fields.get("title") or document.raw.flattened_path
        table.add_row(document.id, document.type_name, str(title)[:120])

    console.print(table)


async def _build(config: SyncConfig, registry: TypeRegistry) -> Cache:
    async for cache in fetch_data(config, registry, watch=False):
        return cache
    raise ContentSyncError("No cache produced")


async def _watch(config: SyncConfig, registry: TypeRegistry) -> None:
    async for cache in fetch_data(config, registry, watch=True):
        console.print(f"Cache updated: {_summary(cache)}")


CONFIG_OPTION = typer.Option(Path(DEFAULT_PROJECT_FILE), "--config", "-c", help="Project file (YAML)")
CONTENT_DIR_OPTION = typer.Option(None, "--content-dir", help="Override the content directory")
EXTRA_DATA_OPTION = typer.Option(None, "--on-extra-data", help="warn | ignore")
MISSING_DATA_OPTION = typer.Option(
    None, "--on-missing-or-incompatible-data", help="skip | fail | skip-ignore"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def build(
    config_path: Path = CONFIG_OPTION,
    content_dir: Optional[Path] = CONTENT_DIR_OPTION,
    on_extra_data: Optional[str] = EXTRA_DATA_OPTION,
    on_missing_or_incompatible_data: Optional[str] = MISSING_DATA_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Load every document once and print the result."""
    _setup_logging(verbose)
    config, registry = _load(config_path, content_dir, on_extra_data, on_missing_or_incompatible_data)

    console.print(f"Loading content from [bold]{config.content_dir_path}[/bold]...")
    try:
        cache = asyncio.run(_build(config, registry))
    except ContentSyncError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)

    _render_cache(cache)
    console.print(f"Loaded {_summary(cache)}")


@app.command()
def dev(
    config_path: Path = CONFIG_OPTION,
    content_dir: Optional[Path] = CONTENT_DIR_OPTION,
    on_extra_data: Optional[str] = EXTRA_DATA_OPTION,
    on_missing_or_incompatible_data: Optional[str] = MISSING_DATA_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Watch the content directory and keep the cache up to date."""
    _setup_logging(verbose)
    config, registry = _load(config_path, content_dir, on_extra_data, on_missing_or_incompatible_data)

    console.print(f"Watching [bold]{config.content_dir_path}[/bold] (Ctrl+C to stop)")
    try:
        asyncio.run(_watch(config, registry))
    except KeyboardInterrupt:
        console.print("Stopped.")
    except ContentSyncError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)


@app.command()
def types(config_path: Path = CONFIG_OPTION) -> None:
    """List the configured document types."""
    try:
        _, document_types = load_project(config_path)
        registry = TypeRegistry(document_types)
    except (ConfigError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Type")
    table.add_column("Pattern")
    table.add_column("Fields")
    for type_def in registry:
        fields = ", ".join(
            f"{field.name}{'*' if field.required else ''}: {field.type}" for field in type_def.fields
        )
        table.add_row(type_def.name, type_def.file_path_pattern, fields)
    console.print(table)
