"""
History record model and builder.

A record is created once per intercepted mutation and never updated
afterwards; metadata fields live next to the core fields as model extras.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field

# optimistic-concurrency counter kept on every stored document
VERSION_KEY = "__v"

RESERVED_FIELDS = frozenset(
    {"collectionName", "collection_name", "time", "action", "data", "metadata"}
)


def utc_now() -> dt.datetime:
    return dt.datetime.now(tz=dt.timezone.utc)


class HistoryAction(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class HistoryRecord(BaseModel):
    """One entry of a history collection."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    collection_name: str | None = Field(default=None, alias="collectionName")
    time: dt.datetime = Field(default_factory=utc_now)
    action: HistoryAction
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def metadata(self) -> Dict[str, Any]:
        """Fields appended by the metadata attacher."""
        return dict(self.model_extra or {})

    def to_document(self) -> Dict[str, Any]:
        """Persisted shape: ``{collectionName, time, action, data, **metadata}``."""
        return {
            "collectionName": self.collection_name,
            "time": self.time,
            "action": self.action.value,
            "data": self.data,
            **self.metadata,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "HistoryRecord":
        return cls.model_validate(dict(doc))


def build_history_record(
    data: Mapping[str, Any],
    action: HistoryAction | str,
    collection_name: str | None = None,
) -> HistoryRecord:
    """
    Wrap ``data`` into a timestamped record, dropping the version counter.

    ``collection_name`` may be left out and assigned by the caller later.
    """
    payload = {k: v for k, v in data.items() if k != VERSION_KEY}
    return HistoryRecord(
        collection_name=collection_name,
        time=utc_now(),
        action=HistoryAction(action),
        data=payload,
    )
