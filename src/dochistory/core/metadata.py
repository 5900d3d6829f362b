"""
Metadata rules appended to every history record.

Each descriptor pairs a record key with one of three rules:

* ``StaticCopy(field)``   copy ``updated[field]`` (``None`` when absent)
* ``SyncDerive(fn)``      ``fn(original, updated)`` returns the value
* ``AsyncDerive(fn)``     ``await fn(original, updated)`` returns the value

All descriptors of a record are resolved concurrently; the first failure
aborts the attach and nothing is written to the record.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Union

from ..exceptions import MetadataError
from .history import RESERVED_FIELDS, HistoryRecord

SyncFn = Callable[[Any, Any], Any]
AsyncFn = Callable[[Any, Any], Awaitable[Any]]
CallbackFn = Callable[[Any, Any, Callable[..., None]], Any]


@dataclass(frozen=True)
class StaticCopy:
    field: str


@dataclass(frozen=True)
class SyncDerive:
    fn: SyncFn


@dataclass(frozen=True)
class AsyncDerive:
    fn: AsyncFn

    @classmethod
    def from_callback(cls, fn: CallbackFn) -> "AsyncDerive":
        """Adapt ``fn(original, updated, done)`` where ``done(error, value)``."""

        async def derive(original: Any, updated: Any) -> Any:
            future = asyncio.get_running_loop().create_future()

            def done(error: Any = None, value: Any = None) -> None:
                if future.done():
                    return
                if error:
                    if not isinstance(error, BaseException):
                        error = RuntimeError(str(error))
                    future.set_exception(error)
                else:
                    future.set_result(value)

            fn(original, updated, done)
            return await future

        return cls(derive)


MetadataRule = Union[StaticCopy, SyncDerive, AsyncDerive]


def _takes_done(fn: Callable[..., Any]) -> bool:
    """True for producers of the form ``fn(original, updated, done)``."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = [
        p
        for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) == 3


@dataclass(frozen=True)
class MetadataDescriptor:
    key: str
    rule: MetadataRule

    def __post_init__(self) -> None:
        if self.key in RESERVED_FIELDS:
            raise ValueError(f"metadata key {self.key!r} collides with a record field")
        if not isinstance(self.rule, (StaticCopy, SyncDerive, AsyncDerive)):
            raise TypeError(f"unsupported metadata rule {self.rule!r}")

    @classmethod
    def from_config(cls, key: str, value: Any) -> "MetadataDescriptor":
        """Pick the rule for a ``{"key": ..., "value": ...}`` entry once, up front."""
        if isinstance(value, (StaticCopy, SyncDerive, AsyncDerive)):
            return cls(key, value)
        if inspect.iscoroutinefunction(value):
            return cls(key, AsyncDerive(value))
        if callable(value) and _takes_done(value):
            return cls(key, AsyncDerive.from_callback(value))
        if callable(value):
            return cls(key, SyncDerive(value))
        return cls(key, StaticCopy(str(value)))

    async def resolve(self, original: Any, updated: Any) -> Any:
        rule = self.rule
        try:
            if isinstance(rule, StaticCopy):
                return updated.get(rule.field) if updated is not None else None
            if isinstance(rule, SyncDerive):
                return rule.fn(original, updated)
            return await rule.fn(original, updated)
        except Exception as exc:
            raise MetadataError(self.key, exc) from exc


def coerce_descriptors(entries: Iterable[Any] | None) -> tuple[MetadataDescriptor, ...]:
    """Accept descriptors or ``{"key", "value"}`` mappings, in order."""
    out = []
    for entry in entries or ():
        if isinstance(entry, MetadataDescriptor):
            out.append(entry)
        elif isinstance(entry, Mapping):
            out.append(MetadataDescriptor.from_config(entry["key"], entry["value"]))
        else:
            raise TypeError(f"cannot read metadata descriptor from {entry!r}")
    return tuple(out)


async def attach_metadata(
    original: Any,
    updated: Any,
    record: HistoryRecord,
    descriptors: Iterable[MetadataDescriptor],
) -> HistoryRecord:
    """Return a copy of ``record`` carrying every descriptor's value."""
    descriptors = tuple(descriptors)
    if not descriptors:
        return record
    values = await asyncio.gather(*(d.resolve(original, updated) for d in descriptors))
    extra: Dict[str, Any] = {d.key: v for d, v in zip(descriptors, values)}
    return record.model_copy(update=extra)
