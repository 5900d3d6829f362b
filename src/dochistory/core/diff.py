"""
Change-set computation between two document snapshots.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

Snapshot = Dict[str, Any]
ChangeSet = Dict[str, Any]

_MISSING = object()


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality that also requires matching types (`True` is not `1`)."""
    if _numeric(a) and _numeric(b):
        return a == b
    if type(a) is not type(b):
        return False
    if isinstance(a, Mapping):
        return a.keys() == b.keys() and all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    return a == b


def get_diff(current: Mapping[str, Any], previous: Mapping[str, Any] | None) -> ChangeSet:
    """
    Return the keys of ``current`` whose value differs from ``previous``.

    * Nested mappings on both sides are reduced to their own change-set.
    * Lists and scalars are compared whole and copied verbatim when unequal.
    * Values of different types never compare equal (`1` vs `True`);
      ints and floats compare by value.
    * Keys only present in ``previous`` are never reported.
    """
    base = previous if previous is not None else {}
    result: ChangeSet = {}
    for key, value in current.items():
        old = base.get(key, _MISSING)
        if old is not _MISSING and deep_equal(value, old):
            continue
        if isinstance(value, Mapping) and isinstance(old, Mapping):
            result[key] = get_diff(value, old)
        else:
            result[key] = value
    return result
