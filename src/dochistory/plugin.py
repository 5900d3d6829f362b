"""
History plugin: wires the interceptor into a Document model's hooks.

    class Task(Document):
        status: str = "open"

    history_plugin(Task, HistoryOptions(diff_only=True))
    # or: Task.plugin(history_plugin, {"diffOnly": True})
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Type

from .core.options import HistoryOptions, history_collection_name
from .events import POST, PRE, QueryContext, RemoveContext, SaveContext, hooks
from .interceptor import (
    AvailableSnapshot,
    HistoryInterceptor,
    Mutation,
    MutationKind,
    RequerySnapshot,
)
from .persistence.base import HistoryModel

if TYPE_CHECKING:
    from .core.record import Document


class HistoryPlugin:
    """Per-model history configuration plus the hook handlers that use it."""

    def __init__(self, model: Type["Document"], options: HistoryOptions):
        self.model = model
        self.options = options
        self.interceptor = HistoryInterceptor(options, self.history_model)

    @property
    def history_collection(self) -> str:
        return history_collection_name(
            self.model.collection(), self.options.custom_collection_name
        )

    def history_model(self) -> HistoryModel:
        store = self.model._history_store
        if store is None:
            raise RuntimeError("Call init_dochistory(engine) or bind_stores() before using history")
        return HistoryModel(store, self.history_collection)

    async def clear_history(self) -> int:
        return await self.history_model().clear()

    # ---------- hook handlers ----------
    async def on_init(self, document: "Document") -> None:
        if self.options.diff_only:
            document._remember_original()

    async def on_save(self, ctx: SaveContext) -> None:
        await self.interceptor.intercept(
            Mutation(
                kind=MutationKind.SAVE,
                collection=ctx.document.collection(),
                source=AvailableSnapshot(ctx.document.to_snapshot()),
                is_new=ctx.is_new,
                original=ctx.original,
            )
        )

    async def on_update(self, ctx: QueryContext) -> None:
        collection = ctx.model.collection()
        await self.interceptor.intercept(
            Mutation(
                kind=MutationKind.UPDATE,
                collection=collection,
                source=RequerySnapshot(ctx.model._ensure_store(), collection, ctx.query),
                update=ctx.update,
            )
        )

    async def on_remove(self, ctx: RemoveContext) -> None:
        await self.interceptor.intercept(
            Mutation(
                kind=MutationKind.REMOVE,
                collection=ctx.model.collection(),
                source=AvailableSnapshot(ctx.document.to_snapshot()),
            )
        )


def history_plugin(
    model: Type["Document"],
    options: HistoryOptions | Mapping[str, Any] | None = None,
) -> HistoryPlugin:
    """Record every insert, update and delete of ``model`` into its history collection."""
    if options is None:
        options = HistoryOptions()
    elif not isinstance(options, HistoryOptions):
        options = HistoryOptions.model_validate(dict(options))

    plugin = HistoryPlugin(model, options)
    hooks.register(POST, "init", (model,), plugin.on_init)
    hooks.register(PRE, "save", (model,), plugin.on_save)
    hooks.register(PRE, "update_one", (model,), plugin.on_update)
    hooks.register(PRE, "find_one_and_update", (model,), plugin.on_update)
    hooks.register(PRE, "remove", (model,), plugin.on_remove)
    hooks.register(POST, "find_one_and_remove", (model,), plugin.on_remove)
    model._history = plugin
    return plugin
