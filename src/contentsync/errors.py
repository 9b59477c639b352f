"""Exception types raised by ContentSync."""

from __future__ import annotations


class ContentSyncError(Exception):
    """Base class for all ContentSync errors."""


class ConfigError(ContentSyncError):
    """Project configuration could not be read or is invalid."""


class DataIncompatibilityError(ContentSyncError):
    """A file matched a document type but its data does not fit the type.

    Recoverable: the loader decides from the flags whether the file is
    skipped or the condition escalates to a :class:`FatalLoadError`.
    """

    def __init__(self, relative_file_path: str, reason: str) -> None:
        super().__init__(f"{relative_file_path}: {reason}")
        self.relative_file_path = relative_file_path
        self.reason = reason


class FatalLoadError(ContentSyncError):
    """Loading a file failed in a way that must abort synchronization."""

    def __init__(self, relative_file_path: str, message: str) -> None:
        super().__init__(f"Failed to load {relative_file_path}: {message}")
        self.relative_file_path = relative_file_path


class SynchronizerStateError(ContentSyncError):
    """An event arrived that the synchronizer cannot handle in its state."""


class SynchronizerFailedError(ContentSyncError):
    """The synchronizer hit a fatal error earlier and accepts no more events."""


class WatcherError(ContentSyncError):
    """The filesystem observer stopped unexpectedly."""
