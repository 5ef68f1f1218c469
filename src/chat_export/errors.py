"""
Custom exceptions for the chat export pipeline.

Transport and sink errors abort the export; attachment and malformed-event
errors are handled where they occur and processing continues.
"""

from __future__ import annotations

from typing import Sequence


class ChatExportError(Exception):
    """Base error for the export pipeline."""

    pass


class ConfigError(ChatExportError):
    """Configuration file missing, unreadable, or invalid."""

    pass


class TransportError(ChatExportError):
    """The chat transport failed while serving a request."""

    pass


class MalformedEventError(ChatExportError):
    """An event is missing sub-fields required by its declared type."""

    def __init__(self, event_id: int, kind: str, detail: str = ""):
        self.event_id = event_id
        self.kind = kind
        msg = f"malformed {kind} event {event_id}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class SinkInitError(ChatExportError):
    """A sink could not acquire its resource."""

    pass


class BulkIndexError(ChatExportError):
    """A search backend accepted a bulk request but rejected some items."""

    pass


class SinkWriteError(ChatExportError):
    """At least one sink failed a fan-out write.

    Attributes:
        operation: "write" or "write_batch"
        failures: (sink name, exception) pairs for every failed sink
    """

    def __init__(self, operation: str, failures: Sequence[tuple[str, BaseException]]):
        self.operation = operation
        self.failures = list(failures)
        detail = "; ".join(f"{name}: {type(exc).__name__}: {exc}" for name, exc in self.failures)
        super().__init__(f"{operation} failed on {len(self.failures)} sink(s): {detail}")


class AttachmentError(ChatExportError):
    """A single attachment download failed."""

    pass


class FetcherClosedError(ChatExportError):
    """The attachment fetcher no longer accepts jobs."""

    pass
