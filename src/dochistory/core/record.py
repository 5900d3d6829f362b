"""
Document kernel – *pure Pydantic* (no SQLAlchemy imports).

* Every mutation runs its lifecycle hooks (dochistory.events) before it
  reaches the store; a failing hook aborts the mutation.
* Loading a document fires ``post init``; ``find_one_and_remove`` fires
  its hooks after the store has removed the document.
"""

import copy
import re
import uuid
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..events import POST, PRE, QueryContext, RemoveContext, SaveContext, hooks
from .history import VERSION_KEY

if TYPE_CHECKING:  # for type-checkers
    from ..persistence.base import DocumentStore, HistoryModel, HistoryStore
    from ..plugin import HistoryPlugin

T_Document = TypeVar("T_Document", bound="Document")


# helpers
def _snake(name: str) -> str:
    """CamelCase ➜ snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _new_id() -> str:
    return uuid.uuid4().hex


# Document base
class Document(BaseModel):
    """Base class – a schemaless document living in one collection."""

    id: Any = Field(default_factory=_new_id, alias="_id")
    version: int = Field(default=0, alias=VERSION_KEY)

    __collection__: ClassVar[Optional[str]] = None
    _store: ClassVar[Optional["DocumentStore"]] = None  # injected by bind_stores()
    _history_store: ClassVar[Optional["HistoryStore"]] = None
    _history: ClassVar[Optional["HistoryPlugin"]] = None  # set by history_plugin()

    model_config = ConfigDict(extra="allow", populate_by_name=True, arbitrary_types_allowed=True)

    _is_new: bool = PrivateAttr(default=True)
    _original: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    # ---------- naming ----------
    @classmethod
    def collection(cls) -> str:
        return cls.__collection__ or f"{_snake(cls.__name__)}s"

    # ---------- snapshots ----------
    @property
    def is_new(self) -> bool:
        return self._is_new

    def to_snapshot(self) -> Dict[str, Any]:
        """Detached copy of the current state, keyed by stored field names."""
        return copy.deepcopy(self.model_dump(by_alias=True))

    def _remember_original(self) -> None:
        self._original = self.to_snapshot()

    def _take_original(self) -> Optional[Dict[str, Any]]:
        original, self._original = self._original, None
        return original

    # ---------- plugins ----------
    @classmethod
    def plugin(cls, fn: Callable[..., Any], options: Any = None) -> Any:
        return fn(cls, options)

    @classmethod
    def history_model(cls) -> "HistoryModel":
        return cls._ensure_history().history_model()

    @classmethod
    async def clear_history(cls) -> int:
        return await cls._ensure_history().clear_history()

    # ---------- instance mutations ----------
    @classmethod
    async def create(cls: Type[T_Document], **data: Any) -> T_Document:
        return await cls(**data).save()

    async def save(self: T_Document) -> T_Document:
        store = self._ensure_store()
        ctx = SaveContext(self, self._is_new, self._take_original())
        await hooks.run(PRE, "save", type(self), ctx)

        snapshot = self.to_snapshot()
        if ctx.is_new:
            await store.insert(self.collection(), snapshot)
        else:
            snapshot[VERSION_KEY] = self.version + 1
            await store.replace(self.collection(), snapshot)
            self.version += 1
        self._is_new = False
        return self

    async def remove(self) -> None:
        store = self._ensure_store()
        await hooks.run(PRE, "remove", type(self), RemoveContext(type(self), self))
        await store.delete_one(self.collection(), {"_id": self.id})

    # ---------- queries ----------
    @classmethod
    async def find_one(
        cls: Type[T_Document], query: Optional[Dict[str, Any]] = None
    ) -> Optional[T_Document]:
        data = await cls._ensure_store().find_one(cls.collection(), query or {})
        if data is None:
            return None
        return await cls._hydrate(data)

    @classmethod
    async def find(
        cls: Type[T_Document], query: Optional[Dict[str, Any]] = None
    ) -> List[T_Document]:
        rows = await cls._ensure_store().find(cls.collection(), query or {})
        return [await cls._hydrate(row) for row in rows]

    @classmethod
    async def update_one(cls, query: Dict[str, Any], update: Dict[str, Any]) -> int:
        """Apply ``update`` to the first match; returns the matched count."""
        store = cls._ensure_store()
        ctx = QueryContext(cls, dict(query), dict(update))
        await hooks.run(PRE, "update_one", cls, ctx)
        return await store.update_one(cls.collection(), ctx.query, ctx.update)

    @classmethod
    async def find_one_and_update(
        cls: Type[T_Document],
        query: Dict[str, Any],
        update: Dict[str, Any],
        *,
        new: bool = False,
    ) -> Optional[T_Document]:
        """Returns the document as it was before the update unless ``new``."""
        store = cls._ensure_store()
        ctx = QueryContext(cls, dict(query), dict(update))
        await hooks.run(PRE, "find_one_and_update", cls, ctx)
        data = await store.find_one_and_update(cls.collection(), ctx.query, ctx.update, new=new)
        if data is None:
            return None
        return await cls._hydrate(data)

    @classmethod
    async def find_one_and_remove(
        cls: Type[T_Document], query: Dict[str, Any]
    ) -> Optional[T_Document]:
        data = await cls._ensure_store().find_one_and_delete(cls.collection(), dict(query))
        if data is None:
            return None
        doc = await cls._hydrate(data)
        await hooks.run(POST, "find_one_and_remove", cls, RemoveContext(cls, doc))
        return doc

    # hydration
    @classmethod
    async def _hydrate(cls: Type[T_Document], data: Dict[str, Any]) -> T_Document:
        doc = cls.model_validate(data)
        doc._is_new = False
        await hooks.run(POST, "init", cls, doc)
        return doc

    # internal util
    @classmethod
    def _ensure_store(cls) -> "DocumentStore":
        if cls._store is None:
            raise RuntimeError("Call init_dochistory(engine) or bind_stores() before using Document")
        return cls._store

    @classmethod
    def _ensure_history(cls) -> "HistoryPlugin":
        if cls._history is None:
            raise RuntimeError(f"{cls.__name__} has no history plugin")
        return cls._history
