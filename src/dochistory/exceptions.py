"""
Error hierarchy for history capture.

Every error raised while recording history aborts the mutation that
triggered it; callers see one failure on the original operation.
"""

from __future__ import annotations

from typing import Any, Mapping


class HistoryError(Exception):
    """Base class for all history-capture failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SnapshotResolutionError(HistoryError):
    """The target document of a query-based update could not be re-fetched."""

    def __init__(self, collection: str, query: Mapping[str, Any]) -> None:
        self.collection = collection
        self.query = dict(query)
        super().__init__(f"no document in {collection!r} matches {self.query!r}")


class MetadataError(HistoryError):
    """A metadata descriptor failed to produce its value."""

    def __init__(self, key: str, cause: BaseException) -> None:
        self.key = key
        self.cause = cause
        super().__init__(f"metadata {key!r} failed: {cause}")


class PersistenceError(HistoryError):
    """Writing a record to the history store failed."""

    def __init__(self, collection: str, cause: BaseException) -> None:
        self.collection = collection
        self.cause = cause
        super().__init__(f"could not write history to {collection!r}: {cause}")


class ClearError(HistoryError):
    """Bulk-deleting a history collection failed."""

    def __init__(self, collection: str, cause: BaseException) -> None:
        self.collection = collection
        self.cause = cause
        super().__init__(f"could not clear {collection!r}: {cause}")
