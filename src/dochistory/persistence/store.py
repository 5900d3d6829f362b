"""
SQLAlchemy data-access layer around the `documents` and `history` tables.
"""

from __future__ import annotations

import copy
import datetime as dt
import json
from typing import Any, Dict, List

from pydantic_core import to_jsonable_python
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..core.history import VERSION_KEY, HistoryAction, HistoryRecord
from .base import DocumentStore, HistoryStore
from .models import DocumentRow, HistoryRow
from .query import apply_update, matches


def _key(doc_id: Any) -> str:
    """Stable string key for an ``_id`` (1 and "1" stay distinct)."""
    return json.dumps(to_jsonable_python(doc_id), sort_keys=True)


def _aware(ts: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=dt.timezone.utc)


class SqlDocumentStore(DocumentStore):
    """Thin data‑access layer around the `documents` table."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    def _new_session(self) -> AsyncSession:
        return self._sessions()

    async def _first(
        self, s: AsyncSession, collection: str, query: Dict[str, Any]
    ) -> DocumentRow | None:
        q = select(DocumentRow).where(DocumentRow.collection == collection)
        if "_id" in query:
            q = q.where(DocumentRow.doc_id == _key(query["_id"]))
        for row in (await s.execute(q.order_by(DocumentRow.pk))).scalars():
            if matches(row.data, query):
                return row
        return None

    # ---- writes ---------------------------------------------------------
    async def insert(self, collection: str, doc: Dict[str, Any]) -> None:
        async with self._new_session() as s:
            if await self._first(s, collection, {"_id": doc["_id"]}) is not None:
                raise KeyError(f"duplicate _id {doc['_id']!r} in {collection!r}")
            s.add(
                DocumentRow(
                    collection=collection,
                    doc_id=_key(doc["_id"]),
                    version=doc.get(VERSION_KEY, 0),
                    data=to_jsonable_python(doc),
                )
            )
            await s.commit()

    async def replace(self, collection: str, doc: Dict[str, Any]) -> None:
        async with self._new_session() as s:
            row = await self._first(s, collection, {"_id": doc["_id"]})
            if row is None:
                raise KeyError(f"no document {doc['_id']!r} in {collection!r}")
            row.data = to_jsonable_python(doc)
            row.version = doc.get(VERSION_KEY, row.version)
            await s.commit()

    async def update_one(
        self, collection: str, query: Dict[str, Any], update: Dict[str, Any]
    ) -> int:
        async with self._new_session() as s:
            row = await self._first(s, collection, query)
            if row is None:
                return 0
            row.data = to_jsonable_python(apply_update(row.data, update))
            await s.commit()
            return 1

    async def find_one_and_update(
        self,
        collection: str,
        query: Dict[str, Any],
        update: Dict[str, Any],
        *,
        new: bool = False,
    ) -> Dict[str, Any] | None:
        async with self._new_session() as s:
            row = await self._first(s, collection, query)
            if row is None:
                return None
            before = copy.deepcopy(row.data)
            row.data = to_jsonable_python(apply_update(before, update))
            after = copy.deepcopy(row.data)
            await s.commit()
            return after if new else before

    async def delete_one(self, collection: str, query: Dict[str, Any]) -> int:
        async with self._new_session() as s:
            row = await self._first(s, collection, query)
            if row is None:
                return 0
            await s.delete(row)
            await s.commit()
            return 1

    async def find_one_and_delete(
        self, collection: str, query: Dict[str, Any]
    ) -> Dict[str, Any] | None:
        async with self._new_session() as s:
            row = await self._first(s, collection, query)
            if row is None:
                return None
            data = copy.deepcopy(row.data)
            await s.delete(row)
            await s.commit()
            return data

    # ---- reads ---------------------------------------------------------
    async def find_one(self, collection: str, query: Dict[str, Any]) -> Dict[str, Any] | None:
        async with self._new_session() as s:
            row = await self._first(s, collection, query)
            return copy.deepcopy(row.data) if row else None

    async def find(self, collection: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with self._new_session() as s:
            q = (
                select(DocumentRow)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.pk)
            )
            rows = (await s.execute(q)).scalars()
            return [copy.deepcopy(r.data) for r in rows if matches(r.data, query)]


class SqlHistoryStore(HistoryStore):
    """Append-only access to the `history` table; no updates, only bulk clear."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    def _new_session(self) -> AsyncSession:
        return self._sessions()

    async def append(self, collection: str, record: HistoryRecord) -> None:
        doc = record.to_document()
        row = HistoryRow(
            history_collection=collection,
            collection_name=doc.pop("collectionName"),
            time=doc.pop("time"),
            action=doc.pop("action"),
            data=to_jsonable_python(doc.pop("data")),
            extra=to_jsonable_python(doc) or None,
        )
        async with self._new_session() as s:
            s.add(row)
            await s.commit()

    async def find(
        self, collection: str, *, action: HistoryAction | None = None
    ) -> List[HistoryRecord]:
        q = select(HistoryRow).where(HistoryRow.history_collection == collection)
        if action is not None:
            q = q.where(HistoryRow.action == action.value)
        async with self._new_session() as s:
            rows = (await s.execute(q.order_by(HistoryRow.id))).scalars()
            return [
                HistoryRecord.from_document(
                    {
                        **(r.extra or {}),
                        "collectionName": r.collection_name,
                        "time": _aware(r.time),
                        "action": r.action,
                        "data": r.data,
                    }
                )
                for r in rows
            ]

    async def count(self, collection: str) -> int:
        q = (
            select(func.count())
            .select_from(HistoryRow)
            .where(HistoryRow.history_collection == collection)
        )
        async with self._new_session() as s:
            return (await s.execute(q)).scalar_one()

    async def clear(self, collection: str) -> int:
        async with self._new_session() as s:
            result = await s.execute(
                delete(HistoryRow).where(HistoryRow.history_collection == collection)
            )
            await s.commit()
            return result.rowcount
