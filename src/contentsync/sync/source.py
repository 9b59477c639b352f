"""Cache snapshot streams for one-shot and watch mode."""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator, Optional

from contentsync.config import SyncConfig
from contentsync.models import Cache
from contentsync.schema.registry import TypeRegistry
from contentsync.sync.events import Init, RawFsEvent, SyncEvent, normalize_events
from contentsync.sync.synchronizer import CacheSynchronizer
from contentsync.sync.watcher import ContentWatcher

LOGGER = logging.getLogger(__name__)


async def _with_initial_load(live: AsyncIterable[SyncEvent]) -> AsyncIterator[SyncEvent]:
    yield Init()
    async for event in live:
        yield event


async def _single_init() -> AsyncIterator[SyncEvent]:
    yield Init()


async def fetch_data(
    config: SyncConfig,
    registry: TypeRegistry,
    *,
    watch: bool = False,
    synchronizer: Optional[CacheSynchronizer] = None,
    raw_events: Optional[AsyncIterable[RawFsEvent]] = None,
) -> AsyncIterator[Cache]:
    """Yield cache snapshots for ``config.content_dir_path``.

    Without ``watch`` exactly one snapshot is produced. In watch mode the
    filesystem is observed before the initial load starts, so changes made
    during the load are queued and applied after it; a snapshot follows
    every event until the caller stops iterating or a fatal error occurs.
    """
    synchronizer = synchronizer or CacheSynchronizer(
        config.content_dir_path,
        registry,
        config.flags,
        max_concurrent_loads=config.max_concurrent_loads,
    )

    if not watch:
        async for cache in synchronizer.run(_single_init()):
            yield cache
        return

    watcher: Optional[ContentWatcher] = None
    if raw_events is None:
        watcher = ContentWatcher(config.content_dir_path)
        watcher.start()
        raw_events = watcher

    try:
        async for cache in synchronizer.run(_with_initial_load(normalize_events(raw_events))):
            yield cache
    finally:
        if watcher is not None:
            watcher.stop()
