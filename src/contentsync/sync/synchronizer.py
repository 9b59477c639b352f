"""Cache synchronization state machine.

The synchronizer owns the working set of documents. Events are applied
one at a time, in arrival order: each event's load work runs to
completion and its result is committed before the next event starts. A
commit swaps in a fully built working set, so a failing step leaves the
last good state untouched.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Dict, Optional

from contentsync.config import Flags
from contentsync.errors import SynchronizerFailedError, SynchronizerStateError
from contentsync.ingestion.loader import DocumentLoader, load_document
from contentsync.models import Cache, Document
from contentsync.schema.registry import TypeRegistry, make_schema, resolve_type
from contentsync.sync.events import Deleted, Init, SyncEvent, Updated
from contentsync.utils.files import iter_content_files
from contentsync.utils.patterns import normalize_relative_path

LOGGER = logging.getLogger(__name__)


class SyncState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED = "failed"


class CacheSynchronizer:
    """Applies synchronization events to the document cache."""

    def __init__(
        self,
        content_dir: Path,
        registry: TypeRegistry,
        flags: Flags | None = None,
        *,
        loader: DocumentLoader = load_document,
        max_concurrent_loads: int = 16,
    ) -> None:
        self.content_dir = Path(content_dir)
        self.registry = registry
        self.flags = flags or Flags()
        self.loader = loader
        self.max_concurrent_loads = max_concurrent_loads
        self.schema = make_schema(registry)
        self._documents: Dict[str, Document] = {}
        self._state = SyncState.UNINITIALIZED
        self._loaded = False
        self._error: Optional[BaseException] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def cache(self) -> Optional[Cache]:
        """Snapshot of the last committed state, ``None`` before the first load."""
        if not self._loaded:
            return None
        return self._snapshot()

    def _snapshot(self) -> Cache:
        return Cache(documents=tuple(self._documents.values()), schema=self.schema)

    async def apply(self, event: SyncEvent) -> Cache:
        """Apply one event and return the resulting cache snapshot."""
        async with self._lock:
            if self._state is SyncState.FAILED:
                raise SynchronizerFailedError("Synchronizer failed earlier") from self._error
            if self._state is SyncState.UNINITIALIZED and not isinstance(event, Init):
                raise SynchronizerStateError(f"Received {event} before the initial load")
            try:
                documents = await self._compute(event)
            except Exception as exc:
                self._state = SyncState.FAILED
                self._error = exc
                LOGGER.error("Synchronization failed on %s: %s", event, exc)
                raise

            if documents is not None:
                self._documents = documents
            self._loaded = True
            self._state = SyncState.READY
            return self._snapshot()

    async def run(self, events: AsyncIterable[SyncEvent]) -> AsyncIterator[Cache]:
        """Consume ``events`` in order, yielding a snapshot after each one."""
        async for event in events:
            yield await self.apply(event)

    async def _compute(self, event: SyncEvent) -> Optional[Dict[str, Document]]:
        """Work out the next working set; ``None`` means unchanged."""
        if isinstance(event, Init):
            return await self._full_scan()
        if isinstance(event, Updated):
            return await self._update(normalize_relative_path(event.relative_file_path))
        if isinstance(event, Deleted):
            return self._delete(normalize_relative_path(event.relative_file_path))
        raise SynchronizerStateError(f"Unknown synchronization event: {event!r}")

    async def _full_scan(self) -> Dict[str, Document]:
        semaphore = asyncio.Semaphore(self.max_concurrent_loads)

        async def load(type_name: str, relative_file_path: str) -> Optional[Document]:
            async with semaphore:
                return await self.loader(
                    self.content_dir, self.registry.get(type_name), relative_file_path, self.flags
                )

        paths = await asyncio.to_thread(lambda: list(iter_content_files(self.content_dir)))
        jobs = []
        for relative_file_path in paths:
            type_name = resolve_type(relative_file_path, self.registry)
            if type_name is None:
                LOGGER.debug("No matching document type found for %s", relative_file_path)
                continue
            jobs.append(load(type_name, relative_file_path))

        results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        documents = {document.id: document for document in results if document is not None}
        LOGGER.info("Loaded %d documents from %s", len(documents), self.content_dir)
        return documents

    async def _update(self, relative_file_path: str) -> Optional[Dict[str, Document]]:
        type_name = resolve_type(relative_file_path, self.registry)
        if type_name is None:
            LOGGER.info("No matching document type found for %s", relative_file_path)
            return None

        document = await self.loader(
            self.content_dir, self.registry.get(type_name), relative_file_path, self.flags
        )
        documents = dict(self._documents)
        documents.pop(relative_file_path, None)
        if document is not None:
            documents[document.id] = document
        return documents

    def _delete(self, relative_file_path: str) -> Optional[Dict[str, Document]]:
        if relative_file_path not in self._documents:
            return None
        documents = dict(self._documents)
        del documents[relative_file_path]
        return documents
