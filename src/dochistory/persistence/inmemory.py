"""In-memory implementations of DocumentStore and HistoryStore."""

import copy
from collections import defaultdict
from typing import Any

from ..core.history import HistoryAction, HistoryRecord
from .base import DocumentStore, HistoryStore
from .query import apply_update, matches


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store for testing and development.

    Uses linear scans for queries. Not suitable for production use.
    """

    def __init__(self) -> None:
        # collection -> list of documents in insertion order
        self._collections: dict[str, list[dict[str, Any]]] = defaultdict(list)

    def _index(self, collection: str, query: dict[str, Any]) -> int | None:
        for i, doc in enumerate(self._collections[collection]):
            if matches(doc, query):
                return i
        return None

    async def insert(self, collection: str, doc: dict[str, Any]) -> None:
        if self._index(collection, {"_id": doc["_id"]}) is not None:
            raise KeyError(f"duplicate _id {doc['_id']!r} in {collection!r}")
        self._collections[collection].append(copy.deepcopy(doc))

    async def replace(self, collection: str, doc: dict[str, Any]) -> None:
        i = self._index(collection, {"_id": doc["_id"]})
        if i is None:
            raise KeyError(f"no document {doc['_id']!r} in {collection!r}")
        self._collections[collection][i] = copy.deepcopy(doc)

    async def find_one(self, collection: str, query: dict[str, Any]) -> dict[str, Any] | None:
        i = self._index(collection, query)
        return None if i is None else copy.deepcopy(self._collections[collection][i])

    async def find(self, collection: str, query: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(doc) for doc in self._collections[collection] if matches(doc, query)
        ]

    async def update_one(
        self, collection: str, query: dict[str, Any], update: dict[str, Any]
    ) -> int:
        i = self._index(collection, query)
        if i is None:
            return 0
        docs = self._collections[collection]
        docs[i] = apply_update(docs[i], update)
        return 1

    async def find_one_and_update(
        self,
        collection: str,
        query: dict[str, Any],
        update: dict[str, Any],
        *,
        new: bool = False,
    ) -> dict[str, Any] | None:
        i = self._index(collection, query)
        if i is None:
            return None
        docs = self._collections[collection]
        before = docs[i]
        docs[i] = apply_update(before, update)
        return copy.deepcopy(docs[i] if new else before)

    async def delete_one(self, collection: str, query: dict[str, Any]) -> int:
        i = self._index(collection, query)
        if i is None:
            return 0
        del self._collections[collection][i]
        return 1

    async def find_one_and_delete(
        self, collection: str, query: dict[str, Any]
    ) -> dict[str, Any] | None:
        i = self._index(collection, query)
        if i is None:
            return None
        return self._collections[collection].pop(i)


class InMemoryHistoryStore(HistoryStore):
    """List-backed history store for testing and development."""

    def __init__(self) -> None:
        self._records: dict[str, list[HistoryRecord]] = defaultdict(list)

    async def append(self, collection: str, record: HistoryRecord) -> None:
        self._records[collection].append(record.model_copy(deep=True))

    async def find(
        self, collection: str, *, action: HistoryAction | None = None
    ) -> list[HistoryRecord]:
        return [
            r.model_copy(deep=True)
            for r in self._records[collection]
            if action is None or r.action == action
        ]

    async def count(self, collection: str) -> int:
        return len(self._records[collection])

    async def clear(self, collection: str) -> int:
        removed = len(self._records[collection])
        self._records[collection] = []
        return removed
