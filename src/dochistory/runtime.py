"""
dochistory.runtime  ──  A thin façade so applications set up engine,
logging and stores with one call.

Usage pattern in user code
--------------------------
    from dochistory import DocHistory

    await DocHistory.init(database_url="postgresql+asyncpg://...")
    ...
    await DocHistory.shutdown()
"""

from __future__ import annotations

from typing import ClassVar, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .bootstrap import init_dochistory
from .logging import get_logger, setup_logging
from .persistence.store import SqlDocumentStore, SqlHistoryStore
from .settings import HistorySettings

logger = get_logger(__name__)


class DocHistory:
    """
    Process-wide singleton holding the engine and the bound stores, so
    callers don't have to juggle engines in different modules.
    """

    _singleton: ClassVar[Optional["DocHistory"]] = None

    def __init__(
        self,
        settings: HistorySettings,
        engine: AsyncEngine,
        documents: SqlDocumentStore,
        history: SqlHistoryStore,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.documents = documents
        self.history = history

    # ---------- one-shot initialiser ----------
    @classmethod
    async def init(
        cls,
        settings: Optional[HistorySettings] = None,
        *,
        database_url: Optional[str] = None,
    ) -> "DocHistory":
        if cls._singleton is None:
            settings = settings or HistorySettings()
            if database_url is not None:
                settings = settings.model_copy(update={"database_url": database_url})

            setup_logging(settings.log_level, settings.log_format)
            engine = create_async_engine(settings.database_url, echo=settings.echo_sql)
            documents, history = await init_dochistory(engine)  # auto-wire stores
            cls._singleton = cls(settings, engine, documents, history)
            logger.info("dochistory_initialised", database=engine.url.render_as_string())
        return cls._singleton

    # ---------- convenience helpers ----------
    @classmethod
    def instance(cls) -> "DocHistory":
        if cls._singleton is None:
            raise RuntimeError("DocHistory.init() has not been called")
        return cls._singleton

    @classmethod
    async def shutdown(cls) -> None:
        if cls._singleton is not None:
            await cls._singleton.engine.dispose()
            cls._singleton = None
