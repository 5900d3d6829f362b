"""
Filter matching and update application shared by every DocumentStore.

Filters are equality maps on top-level or dotted field paths.
Updates accept ``$set``, ``$unset`` and ``$inc``; bare fields mean ``$set``.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

_MISSING = object()

UPDATE_OPERATORS = frozenset({"$set", "$unset", "$inc"})


def _lookup(doc: Mapping[str, Any], path: str) -> Any:
    node: Any = doc
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return _MISSING
        node = node[part]
    return node


def matches(doc: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """True when every ``query`` field equals the document's value."""
    for path, expected in query.items():
        if _lookup(doc, path) != expected:
            return False
    return True


def _parent(doc: Dict[str, Any], path: str, create: bool) -> tuple[Dict[str, Any] | None, str]:
    parts = path.split(".")
    node = doc
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            if not create:
                return None, parts[-1]
            child = node[part] = {}
        node = child
    return node, parts[-1]


def split_update(update: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Group an update into ``{operator: {path: value}}``."""
    ops: Dict[str, Dict[str, Any]] = {}
    for key, value in update.items():
        if key.startswith("$"):
            if key not in UPDATE_OPERATORS:
                raise ValueError(f"unsupported update operator {key!r}")
            ops.setdefault(key, {}).update(value)
        else:
            ops.setdefault("$set", {})[key] = value
    return ops


def apply_update(doc: Mapping[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a new document with ``update`` applied; ``_id`` is immutable."""
    result = copy.deepcopy(dict(doc))
    for op, fields in split_update(update).items():
        for path, value in fields.items():
            if path == "_id":
                if value != result.get("_id"):
                    raise ValueError("the _id field cannot be modified")
                continue
            if op == "$set":
                parent, leaf = _parent(result, path, create=True)
                parent[leaf] = copy.deepcopy(value)
            elif op == "$unset":
                parent, leaf = _parent(result, path, create=False)
                if parent is not None:
                    parent.pop(leaf, None)
            else:
                parent, leaf = _parent(result, path, create=True)
                parent[leaf] = parent.get(leaf, 0) + value
    return result
