"""Tests for the watchdog-backed content watcher."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from contentsync.errors import WatcherError
from contentsync.sync.events import RawEventKind, RawFsEvent
from contentsync.sync.watcher import ContentWatcher, translate_event


class FakeObserver:
    """Observer stand-in that records the scheduled handler."""

    def __init__(self) -> None:
        self.handler = None
        self.path = None
        self.alive = True
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.path = path

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout=None) -> None:
        pass

    def is_alive(self) -> bool:
        return self.alive


class TestTranslateEvent:
    """Test translate_event mapping from watchdog events."""

    def test_file_created(self, tmp_path: Path) -> None:
        event = FileCreatedEvent(str(tmp_path / "posts" / "a.md"))

        assert translate_event(event, tmp_path) == [RawFsEvent(RawEventKind.ADD, "posts/a.md")]

    def test_file_modified(self, tmp_path: Path) -> None:
        event = FileModifiedEvent(str(tmp_path / "a.md"))

        assert translate_event(event, tmp_path) == [RawFsEvent(RawEventKind.CHANGE, "a.md")]

    def test_file_deleted(self, tmp_path: Path) -> None:
        event = FileDeletedEvent(str(tmp_path / "a.md"))

        assert translate_event(event, tmp_path) == [RawFsEvent(RawEventKind.UNLINK, "a.md")]

    def test_file_moved(self, tmp_path: Path) -> None:
        """Should turn a move into removal then addition."""
        event = FileMovedEvent(str(tmp_path / "drafts" / "a.md"), str(tmp_path / "posts" / "a.md"))

        assert translate_event(event, tmp_path) == [
            RawFsEvent(RawEventKind.UNLINK, "drafts/a.md"),
            RawFsEvent(RawEventKind.ADD, "posts/a.md"),
        ]

    def test_file_moved_out_of_content_dir(self, tmp_path: Path) -> None:
        event = FileMovedEvent(str(tmp_path / "a.md"), "/elsewhere/a.md")

        assert translate_event(event, tmp_path) == [RawFsEvent(RawEventKind.UNLINK, "a.md")]

    def test_directory_events(self, tmp_path: Path) -> None:
        created = DirCreatedEvent(str(tmp_path / "posts"))
        deleted = DirDeletedEvent(str(tmp_path / "posts"))
        moved = DirMovedEvent(str(tmp_path / "a"), str(tmp_path / "b"))

        assert translate_event(created, tmp_path) == [RawFsEvent(RawEventKind.ADD_DIR, "posts")]
        assert translate_event(deleted, tmp_path) == [RawFsEvent(RawEventKind.UNLINK_DIR, "posts")]
        assert translate_event(moved, tmp_path) == [
            RawFsEvent(RawEventKind.UNLINK_DIR, "a"),
            RawFsEvent(RawEventKind.ADD_DIR, "b"),
        ]

    def test_directory_modified_dropped(self, tmp_path: Path) -> None:
        """Should ignore directory modification notifications."""
        assert translate_event(DirModifiedEvent(str(tmp_path / "posts")), tmp_path) == []

    def test_root_directory_dropped(self, tmp_path: Path) -> None:
        assert translate_event(DirModifiedEvent(str(tmp_path)), tmp_path) == []
        assert translate_event(DirDeletedEvent(str(tmp_path)), tmp_path) == []


class TestContentWatcher:
    """Test ContentWatcher lifecycle and streaming."""

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Should raise WatcherError when the directory does not exist."""
        watcher = ContentWatcher(tmp_path / "missing", observer_factory=FakeObserver)

        async def start() -> None:
            watcher.start()

        with pytest.raises(WatcherError):
            asyncio.run(start())

    def test_streams_events_in_order(self, tmp_path: Path) -> None:
        """Should forward observer events in the order they happen."""
        observer = FakeObserver()
        watcher = ContentWatcher(tmp_path, observer_factory=lambda: observer, stability_threshold=0.02)
        (tmp_path / "a.md").write_text("a")

        async def scenario() -> list[RawFsEvent]:
            watcher.start()
            assert observer.path == str(tmp_path.resolve())
            observer.handler.dispatch(FileCreatedEvent(str(tmp_path.resolve() / "a.md")))
            observer.handler.dispatch(FileDeletedEvent(str(tmp_path.resolve() / "b.md")))
            stream = watcher.events()
            received = [await stream.__anext__(), await stream.__anext__()]
            await stream.aclose()
            return received

        received = asyncio.run(scenario())
        watcher.stop()

        assert received == [
            RawFsEvent(RawEventKind.ADD, "a.md"),
            RawFsEvent(RawEventKind.UNLINK, "b.md"),
        ]
        assert observer.started
        assert observer.stopped
        assert not watcher.running

    def test_dead_observer_raises(self, tmp_path: Path) -> None:
        """Should surface an observer that stopped as WatcherError."""
        observer = FakeObserver()
        watcher = ContentWatcher(tmp_path, observer_factory=lambda: observer, health_check_interval=0.01)

        async def scenario() -> None:
            watcher.start()
            observer.alive = False
            async for _ in watcher:
                pass

        with pytest.raises(WatcherError, match="stopped unexpectedly"):
            asyncio.run(scenario())

    def test_start_failure(self, tmp_path: Path) -> None:
        observer = MagicMock()
        observer.start.side_effect = OSError("inotify limit reached")
        watcher = ContentWatcher(tmp_path, observer_factory=lambda: observer)

        async def start() -> None:
            watcher.start()

        with pytest.raises(WatcherError, match="inotify limit"):
            asyncio.run(start())
        assert not watcher.running

    def test_stop_is_idempotent(self, tmp_path: Path) -> None:
        watcher = ContentWatcher(tmp_path, observer_factory=FakeObserver)

        watcher.stop()
        watcher.stop()

        assert not watcher.running
