"""Tests for the SQLAlchemy stores against a temporary SQLite database."""

from datetime import UTC, datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from dochistory import (
    Document,
    HistoryAction,
    HistoryOptions,
    build_history_record,
    history_plugin,
    init_dochistory,
)
from dochistory.persistence.store import SqlDocumentStore, SqlHistoryStore


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_stores(engine):
    return await init_dochistory(engine)


class TestSqlDocumentStore:
    @pytest.mark.asyncio
    async def test_insert_and_find(self, sql_stores):
        documents, _ = sql_stores
        await documents.insert("tasks", {"_id": 1, "__v": 0, "status": "open"})
        await documents.insert("tasks", {"_id": "1", "__v": 0, "status": "done"})

        assert await documents.find_one("tasks", {"_id": 1}) == {
            "_id": 1,
            "__v": 0,
            "status": "open",
        }
        assert await documents.find("tasks", {"status": "done"}) == [
            {"_id": "1", "__v": 0, "status": "done"}
        ]

    @pytest.mark.asyncio
    async def test_duplicate_insert_rejected(self, sql_stores):
        documents, _ = sql_stores
        await documents.insert("tasks", {"_id": 1})
        with pytest.raises(KeyError):
            await documents.insert("tasks", {"_id": 1})

    @pytest.mark.asyncio
    async def test_update_variants(self, sql_stores):
        documents, _ = sql_stores
        await documents.insert("tasks", {"_id": 1, "n": 1})

        assert await documents.update_one("tasks", {"_id": 1}, {"$inc": {"n": 1}}) == 1
        assert await documents.update_one("tasks", {"_id": 2}, {"n": 0}) == 0
        after = await documents.find_one_and_update("tasks", {"_id": 1}, {"n": 10}, new=True)
        before = await documents.find_one_and_update("tasks", {"_id": 1}, {"n": 11})

        assert after == {"_id": 1, "n": 10}
        assert before == {"_id": 1, "n": 10}
        assert (await documents.find_one("tasks", {"_id": 1}))["n"] == 11

    @pytest.mark.asyncio
    async def test_replace_and_delete(self, sql_stores):
        documents, _ = sql_stores
        await documents.insert("tasks", {"_id": 1, "__v": 0, "a": 1})
        await documents.replace("tasks", {"_id": 1, "__v": 1, "a": 2})

        assert await documents.find_one_and_delete("tasks", {"a": 2}) == {
            "_id": 1,
            "__v": 1,
            "a": 2,
        }
        assert await documents.delete_one("tasks", {"_id": 1}) == 0


class TestSqlHistoryStore:
    @pytest.mark.asyncio
    async def test_append_find_count_clear(self, sql_stores):
        _, history = sql_stores
        started = datetime.now(UTC)
        record = build_history_record({"_id": 1, "a": 1}, "insert", "tasks").model_copy(
            update={"user": "ann"}
        )
        await history.append("tasks_history", record)
        await history.append("tasks_history", build_history_record({"_id": 1}, "delete", "tasks"))
        await history.append("other_history", build_history_record({"_id": 9}, "insert", "other"))

        found = await history.find("tasks_history")
        assert [r.action for r in found] == [HistoryAction.INSERT, HistoryAction.DELETE]
        assert found[0].collection_name == "tasks"
        assert found[0].data == {"_id": 1, "a": 1}
        assert found[0].metadata == {"user": "ann"}
        assert found[0].time.tzinfo is not None
        assert found[0].time >= started.replace(microsecond=0)

        deletes = await history.find("tasks_history", action=HistoryAction.DELETE)
        assert len(deletes) == 1
        assert await history.count("tasks_history") == 2
        assert await history.clear("tasks_history") == 2
        assert await history.count("tasks_history") == 0
        assert await history.count("other_history") == 1


class TestSqlEndToEnd:
    @pytest.mark.asyncio
    async def test_stores_bound_to_documents(self, sql_stores):
        class Task(Document):
            status: str = "open"

        assert isinstance(Task._store, SqlDocumentStore)
        assert isinstance(Task._history_store, SqlHistoryStore)

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, sql_stores):
        class Task(Document):
            status: str = "open"

        history_plugin(
            Task,
            HistoryOptions(diff_only=True, metadata=[{"key": "user", "value": "updatedBy"}]),
        )

        await Task.create(_id=1, updatedBy="ann")
        task = await Task.find_one({"_id": 1})
        task.status = "doing"
        await task.save()
        await Task.update_one({"_id": 1}, {"status": "done", "updatedBy": "bob"})
        await Task.find_one_and_remove({"_id": 1})

        records = await Task.history_model().find()
        assert [r.action for r in records] == [
            HistoryAction.INSERT,
            HistoryAction.UPDATE,
            HistoryAction.UPDATE,
            HistoryAction.DELETE,
        ]
        assert records[1].data == {"_id": 1, "status": "doing"}
        assert records[2].data == {"status": "done", "updatedBy": "bob", "_id": 1}
        assert records[3].data == {"_id": 1, "status": "done", "updatedBy": "bob"}
        assert [r.user for r in records] == ["ann", "ann", "bob", "bob"]

        assert await Task.clear_history() == 4
        assert await Task.history_model().find() == []
