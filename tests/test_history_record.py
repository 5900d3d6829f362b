"""Tests for HistoryRecord and the record builder."""

from datetime import UTC, datetime

import pytest

from dochistory import HistoryAction, HistoryRecord, build_history_record


class TestBuildHistoryRecord:
    def test_insert_record(self):
        before = datetime.now(UTC)
        record = build_history_record({"_id": 1, "name": "ann", "__v": 3}, "insert", "users")

        assert record.action == HistoryAction.INSERT
        assert record.collection_name == "users"
        assert record.time >= before
        assert record.data == {"_id": 1, "name": "ann"}

    def test_version_key_stripped_without_touching_input(self):
        data = {"_id": 1, "__v": 0}
        build_history_record(data, HistoryAction.UPDATE, "users")
        assert data == {"_id": 1, "__v": 0}

    def test_collection_name_can_be_assigned_later(self):
        record = build_history_record({"_id": 1}, "update")
        assert record.collection_name is None

        record.collection_name = "users"
        assert record.to_document()["collectionName"] == "users"

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            build_history_record({"_id": 1}, "upsert", "users")


class TestHistoryRecord:
    def test_to_document_shape(self):
        record = build_history_record({"_id": 1}, "delete", "users").model_copy(
            update={"user": "alice"}
        )
        doc = record.to_document()

        assert set(doc) == {"collectionName", "time", "action", "data", "user"}
        assert doc["action"] == "delete"
        assert doc["user"] == "alice"
        assert record.metadata == {"user": "alice"}

    def test_from_document_reads_aliases_and_metadata(self):
        record = HistoryRecord.from_document(
            {
                "collectionName": "users",
                "time": "2024-01-01T00:00:00+00:00",
                "action": "update",
                "data": {"_id": 1},
                "ip": "10.0.0.1",
            }
        )
        assert record.collection_name == "users"
        assert record.action is HistoryAction.UPDATE
        assert record.metadata == {"ip": "10.0.0.1"}
