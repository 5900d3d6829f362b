"""
Single entry-point that wires stores into every Document model.
Call once, e.g. in FastAPI startup or a test fixture.
"""

from sqlalchemy.ext.asyncio import AsyncEngine

from .core.record import Document
from .persistence.base import DocumentStore, HistoryStore
from .persistence.models import Base
from .persistence.store import SqlDocumentStore, SqlHistoryStore


def _all_subclasses(cls: type) -> list[type]:
    out = []
    for sub in cls.__subclasses__():
        out.append(sub)
        out.extend(_all_subclasses(sub))
    return out


def bind_stores(documents: DocumentStore, history: HistoryStore) -> None:
    """Inject both stores into Document *and* every existing subclass."""
    for cls in (Document, *_all_subclasses(Document)):
        cls._store = documents  # type: ignore[attr-defined]
        cls._history_store = history  # type: ignore[attr-defined]


async def init_dochistory(engine: AsyncEngine) -> tuple[SqlDocumentStore, SqlHistoryStore]:
    """
    Create the `documents` and `history` tables, then bind SQL-backed
    stores to every Document model.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)  # ← this line creates tables
    documents = SqlDocumentStore(engine)
    history = SqlHistoryStore(engine)
    bind_stores(documents, history)
    return documents, history
