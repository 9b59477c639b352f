"""Filesystem observation for watch mode, built on watchdog."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import AsyncIterator, Callable, List

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from contentsync.errors import WatcherError
from contentsync.sync.events import RawEventKind, RawFsEvent
from contentsync.utils.files import to_relative_path

LOGGER = logging.getLogger(__name__)


def _relative(path: str | bytes, content_dir: Path) -> str | None:
    relative = to_relative_path(os.fsdecode(path), content_dir)
    if relative in (None, "", "."):
        return None
    return relative


def translate_event(event: FileSystemEvent, content_dir: Path) -> List[RawFsEvent]:
    """Translate one watchdog event into zero or more raw events.

    Moves become a removal of the source followed by an addition of the
    destination. Directory modifications and open/close notifications
    carry no content change and are dropped.
    """
    if event.is_directory:
        add_kind, remove_kind, change_kind = RawEventKind.ADD_DIR, RawEventKind.UNLINK_DIR, None
    else:
        add_kind, remove_kind, change_kind = RawEventKind.ADD, RawEventKind.UNLINK, RawEventKind.CHANGE

    src = _relative(event.src_path, content_dir)
    if event.event_type == EVENT_TYPE_MOVED:
        dest = _relative(getattr(event, "dest_path", ""), content_dir)
        events = []
        if src is not None:
            events.append(RawFsEvent(remove_kind, src))
        if dest is not None:
            events.append(RawFsEvent(add_kind, dest))
        return events

    if src is None:
        return []
    if event.event_type == EVENT_TYPE_CREATED:
        return [RawFsEvent(add_kind, src)]
    if event.event_type == EVENT_TYPE_DELETED:
        return [RawFsEvent(remove_kind, src)]
    if event.event_type == EVENT_TYPE_MODIFIED and change_kind is not None:
        return [RawFsEvent(change_kind, src)]
    return []


class _ForwardingHandler(FileSystemEventHandler):
    """Forwards translated events from the observer thread."""

    def __init__(self, content_dir: Path, emit: Callable[[RawFsEvent], None]) -> None:
        super().__init__()
        self.content_dir = content_dir
        self.emit = emit

    def on_any_event(self, event: FileSystemEvent) -> None:
        for raw in translate_event(event, self.content_dir):
            self.emit(raw)


class ContentWatcher:
    """Streams raw filesystem events below a content directory.

    Pre-existing files produce no events. File additions and changes are
    held back until the file stops changing for ``stability_threshold``
    seconds, so half-written files are not read. Events keep their
    observed order.
    """

    def __init__(
        self,
        content_dir: Path,
        *,
        stability_threshold: float = 0.05,
        poll_interval: float = 0.01,
        health_check_interval: float = 1.0,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self.content_dir = Path(content_dir).resolve()
        self.stability_threshold = stability_threshold
        self.poll_interval = poll_interval
        self.health_check_interval = health_check_interval
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._queue: asyncio.Queue[RawFsEvent] = asyncio.Queue()

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Start observing; must be called from the event loop's thread."""
        if self._observer is not None:
            return
        if not self.content_dir.is_dir():
            raise WatcherError(f"Content directory not found: {self.content_dir}")

        loop = asyncio.get_running_loop()

        def emit(raw: RawFsEvent) -> None:
            loop.call_soon_threadsafe(self._queue.put_nowait, raw)

        observer = self._observer_factory()
        observer.schedule(_ForwardingHandler(self.content_dir, emit), str(self.content_dir), recursive=True)
        try:
            observer.start()
        except OSError as exc:
            raise WatcherError(f"Cannot watch {self.content_dir}: {exc}") from exc
        self._observer = observer
        LOGGER.debug("Watching %s", self.content_dir)

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        LOGGER.debug("Stopped watching %s", self.content_dir)

    def __aiter__(self) -> AsyncIterator[RawFsEvent]:
        return self.events()

    async def events(self) -> AsyncIterator[RawFsEvent]:
        if self._observer is None:
            self.start()
        while True:
            try:
                raw = await asyncio.wait_for(self._queue.get(), timeout=self.health_check_interval)
            except asyncio.TimeoutError:
                self._check_alive()
                continue
            if raw.kind in (RawEventKind.ADD, RawEventKind.CHANGE):
                await self._await_write_finish(raw.path)
            yield raw

    def _check_alive(self) -> None:
        observer = self._observer
        if observer is None:
            raise WatcherError("Watcher was stopped")
        if not observer.is_alive():
            raise WatcherError(f"Filesystem observer for {self.content_dir} stopped unexpectedly")

    async def _await_write_finish(self, relative_file_path: str) -> None:
        path = self.content_dir / relative_file_path
        last = None
        stable_for = 0.0
        while stable_for < self.stability_threshold:
            try:
                stat = path.stat()
            except FileNotFoundError:
                return
            current = (stat.st_size, stat.st_mtime_ns)
            if current == last:
                stable_for += self.poll_interval
            else:
                last = current
                stable_for = 0.0
            await asyncio.sleep(self.poll_interval)
