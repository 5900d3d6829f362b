"""
dochistory.interceptor  ──  one capture path for every kind of mutation

    IDLE → CAPTURING → DIFFING → BUILDING → ATTACHING → PERSISTING → DONE | FAILED

A mutation is described by its kind (save, update, remove) and by where
its "before" state comes from: either already at hand, or re-read from
the primary store with the mutation's own query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Dict, Optional, Protocol

from .core.diff import Snapshot, get_diff
from .core.history import HistoryAction, HistoryRecord, build_history_record
from .core.metadata import attach_metadata
from .core.options import HistoryOptions
from .exceptions import SnapshotResolutionError
from .logging import get_logger
from .persistence.base import DocumentStore, HistoryModel

logger = get_logger(__name__)


class MutationKind(StrEnum):
    SAVE = "save"
    UPDATE = "update"
    REMOVE = "remove"


class InterceptorState(StrEnum):
    IDLE = "idle"
    CAPTURING = "capturing"
    DIFFING = "diffing"
    BUILDING = "building"
    ATTACHING = "attaching"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


# ---------- snapshot resolution strategies ----------
class SnapshotSource(Protocol):
    async def resolve(self) -> Snapshot: ...


@dataclass(frozen=True)
class AvailableSnapshot:
    """The state is already known (document in memory, or just removed)."""

    snapshot: Snapshot

    async def resolve(self) -> Snapshot:
        return self.snapshot


@dataclass(frozen=True)
class RequerySnapshot:
    """Re-run the mutation's filter against the primary store."""

    store: DocumentStore
    collection: str
    query: Dict[str, Any]

    async def resolve(self) -> Snapshot:
        found = await self.store.find_one(self.collection, self.query)
        if found is None:
            raise SnapshotResolutionError(self.collection, self.query)
        return found


@dataclass
class Mutation:
    kind: MutationKind
    collection: str
    source: SnapshotSource
    is_new: bool = False
    original: Optional[Snapshot] = None  # state at load time (save only)
    update: Dict[str, Any] = field(default_factory=dict)  # raw instruction (update only)


@dataclass
class Capture:
    data: Dict[str, Any]
    action: HistoryAction
    original: Any
    updated: Any


class HistoryInterceptor:
    """Turns one mutation into one persisted history record."""

    def __init__(self, options: HistoryOptions, history_model: Callable[[], HistoryModel]):
        self.options = options
        self._history_model = history_model

    async def intercept(self, mutation: Mutation) -> HistoryRecord:
        state = InterceptorState.IDLE
        log = logger.bind(collection=mutation.collection, kind=mutation.kind.value)
        try:
            state = InterceptorState.CAPTURING
            log.debug("interceptor_state", state=state.value)
            snapshot = await mutation.source.resolve()

            state = InterceptorState.DIFFING
            log.debug("interceptor_state", state=state.value)
            capture = self._capture(mutation, snapshot)

            state = InterceptorState.BUILDING
            log.debug("interceptor_state", state=state.value)
            record = build_history_record(capture.data, capture.action)
            record.collection_name = mutation.collection

            state = InterceptorState.ATTACHING
            log.debug("interceptor_state", state=state.value)
            record = await attach_metadata(
                capture.original, capture.updated, record, self.options.metadata
            )

            state = InterceptorState.PERSISTING
            log.debug("interceptor_state", state=state.value)
            history = self._history_model()
            await history.save(record)
        except Exception as exc:
            log.warning(
                "history_capture_failed",
                state=InterceptorState.FAILED.value,
                failed_in=state.value,
                error=str(exc),
            )
            raise

        log.info(
            "history_recorded",
            state=InterceptorState.DONE.value,
            history=history.name,
            action=record.action.value,
        )
        return record

    # ---------- per-kind capture ----------
    def _capture(self, mutation: Mutation, snapshot: Snapshot) -> Capture:
        if mutation.kind is MutationKind.SAVE:
            return self._capture_save(mutation, snapshot)
        if mutation.kind is MutationKind.UPDATE:
            return self._capture_update(mutation, snapshot)
        return Capture(snapshot, HistoryAction.DELETE, snapshot, snapshot)

    def _capture_save(self, mutation: Mutation, current: Snapshot) -> Capture:
        original = mutation.original
        if self.options.diff_only and not mutation.is_new and original is not None:
            return Capture(
                self._field_diff(current, original), HistoryAction.UPDATE, original, current
            )
        action = HistoryAction.INSERT if mutation.is_new else HistoryAction.UPDATE
        return Capture(current, action, original, current)

    def _field_diff(self, current: Snapshot, original: Snapshot) -> Dict[str, Any]:
        diff: Dict[str, Any] = {"_id": current.get("_id")}
        algo = self.options.custom_diff_algo
        for key, value in current.items():
            old = original.get(key)
            if algo is not None:
                result = algo(key, value, old)
                if result:
                    diff[key] = result["diff"]
            elif str(value) != str(old):
                diff[key] = value
        return diff

    def _capture_update(self, mutation: Mutation, previous: Snapshot) -> Capture:
        data = get_diff(mutation.update, previous)
        data["_id"] = previous["_id"]
        if "updatedBy" in mutation.update:
            data["updatedBy"] = mutation.update["updatedBy"]
        return Capture(data, HistoryAction.UPDATE, previous, data)
