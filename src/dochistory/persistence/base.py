"""Abstract store interfaces and the per-model history handle."""

from abc import ABC, abstractmethod
from typing import Any

from ..core.history import HistoryAction, HistoryRecord
from ..exceptions import ClearError, PersistenceError


class DocumentStore(ABC):
    """Primary collections. Snapshots go in and come out as plain dicts."""

    @abstractmethod
    async def insert(self, collection: str, doc: dict[str, Any]) -> None:
        """Insert a new document; duplicate ``_id`` is an error."""

    @abstractmethod
    async def replace(self, collection: str, doc: dict[str, Any]) -> None:
        """Overwrite the stored document with the same ``_id``."""

    @abstractmethod
    async def find_one(self, collection: str, query: dict[str, Any]) -> dict[str, Any] | None:
        """First document matching ``query``, or None."""

    @abstractmethod
    async def find(self, collection: str, query: dict[str, Any]) -> list[dict[str, Any]]:
        """Every document matching ``query``, in insertion order."""

    @abstractmethod
    async def update_one(
        self, collection: str, query: dict[str, Any], update: dict[str, Any]
    ) -> int:
        """Update the first match; returns the number of matched documents (0 or 1)."""

    @abstractmethod
    async def find_one_and_update(
        self,
        collection: str,
        query: dict[str, Any],
        update: dict[str, Any],
        *,
        new: bool = False,
    ) -> dict[str, Any] | None:
        """Update the first match and return it before (or, with ``new``, after) the update."""

    @abstractmethod
    async def delete_one(self, collection: str, query: dict[str, Any]) -> int:
        """Delete the first match; returns the number deleted."""

    @abstractmethod
    async def find_one_and_delete(
        self, collection: str, query: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Delete the first match and return it."""


class HistoryStore(ABC):
    """Append-only history collections, addressed by name."""

    @abstractmethod
    async def append(self, collection: str, record: HistoryRecord) -> None:
        """Persist one record."""

    @abstractmethod
    async def find(
        self, collection: str, *, action: HistoryAction | None = None
    ) -> list[HistoryRecord]:
        """Records of a collection in insertion order."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Number of records in a collection."""

    @abstractmethod
    async def clear(self, collection: str) -> int:
        """Delete every record of a collection; returns how many were removed."""


class HistoryModel:
    """Handle on one history collection (``<collection>_history`` by default)."""

    def __init__(self, store: HistoryStore, name: str) -> None:
        self.store = store
        self.name = name

    def __repr__(self) -> str:
        return f"HistoryModel({self.name!r})"

    async def save(self, record: HistoryRecord) -> None:
        try:
            await self.store.append(self.name, record)
        except Exception as exc:
            raise PersistenceError(self.name, exc) from exc

    async def find(self, *, action: HistoryAction | str | None = None) -> list[HistoryRecord]:
        return await self.store.find(
            self.name, action=HistoryAction(action) if action is not None else None
        )

    async def count(self) -> int:
        return await self.store.count(self.name)

    async def clear(self) -> int:
        try:
            return await self.store.clear(self.name)
        except Exception as exc:
            raise ClearError(self.name, exc) from exc
