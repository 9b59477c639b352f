"""Synchronization events and the mapping from raw filesystem events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterable, AsyncIterator, Union

LOGGER = logging.getLogger(__name__)


class RawEventKind(str, Enum):
    ADD = "add"
    CHANGE = "change"
    UNLINK = "unlink"
    ADD_DIR = "addDir"
    UNLINK_DIR = "unlinkDir"


@dataclass(frozen=True, slots=True)
class RawFsEvent:
    """Primitive filesystem notification, path relative to the content dir."""

    kind: RawEventKind
    path: str


@dataclass(frozen=True, slots=True)
class Init:
    """Reload everything from disk."""

    tag = "init"


@dataclass(frozen=True, slots=True)
class Updated:
    relative_file_path: str

    tag = "update"


@dataclass(frozen=True, slots=True)
class Deleted:
    relative_file_path: str

    tag = "deleted"


SyncEvent = Union[Init, Updated, Deleted]


def normalize_event(raw: RawFsEvent) -> SyncEvent:
    """Map a raw filesystem event onto a synchronization event.

    Directory additions and removals can change which files match which
    document types, so they trigger a full reload.
    """
    if raw.kind in (RawEventKind.ADD, RawEventKind.CHANGE):
        return Updated(raw.path)
    if raw.kind is RawEventKind.UNLINK:
        return Deleted(raw.path)
    if raw.kind in (RawEventKind.ADD_DIR, RawEventKind.UNLINK_DIR):
        return Init()
    raise ValueError(f"Unknown raw event kind: {raw.kind!r}")


async def normalize_events(raw_events: AsyncIterable[RawFsEvent]) -> AsyncIterator[SyncEvent]:
    async for raw in raw_events:
        event = normalize_event(raw)
        if isinstance(event, (Updated, Deleted)):
            LOGGER.info('Watch event "%s": %s', event.tag, event.relative_file_path)
        yield event
