"""
Two-table schema: current documents and their append-only history.
"""

import datetime as dt

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on Postgres, plain JSON everywhere else (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def now_utc() -> dt.datetime:  # compact timezone‑aware timestamp
    return dt.datetime.now(tz=dt.timezone.utc)


class DocumentRow(Base):
    """Latest state of every document of every primary collection."""

    __tablename__ = "documents"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String, nullable=False, index=True)
    doc_id = Column(String, nullable=False, index=True)  # JSON-encoded _id
    version = Column(Integer, nullable=False, default=0)
    updated_ts = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)
    data = Column(JSONType, nullable=False)


class HistoryRow(Base):
    """One history record; ``history_collection`` names the history collection."""

    __tablename__ = "history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    history_collection = Column(String, nullable=False, index=True)
    collection_name = Column(String, nullable=True)
    time = Column(DateTime(timezone=True), nullable=False)
    action = Column(String, nullable=False)
    data = Column(JSONType, nullable=False)
    extra = Column(JSONType, nullable=True)  # metadata fields
