"""
dochistory.events  ──  Lifecycle hooks around Document operations
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Tuple, Type

if TYPE_CHECKING:
    from .core.record import Document

PRE = "pre"
POST = "post"

OPERATIONS = frozenset(
    {
        "init",
        "save",
        "remove",
        "update_one",
        "find_one_and_update",
        "find_one_and_remove",
    }
)

Hook = Callable[[Any], Awaitable[None]]


@dataclass
class SaveContext:
    """Payload of ``pre save``; ``original`` is taken off the document once."""

    document: "Document"
    is_new: bool
    original: Dict[str, Any] | None = None


@dataclass
class QueryContext:
    """Payload of ``pre update_one`` / ``pre find_one_and_update``."""

    model: Type["Document"]
    query: Dict[str, Any]
    update: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RemoveContext:
    """Payload of ``pre remove`` and ``post find_one_and_remove``."""

    model: Type["Document"]
    document: "Document"


class HookRegistry:
    """Central registry for lifecycle hooks"""

    def __init__(self):
        # (phase, operation) -> model class -> handlers in registration order
        self._handlers: Dict[Tuple[str, str], Dict[type, List[Hook]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def register(
        self,
        phase: str,
        operation: str,
        model_classes: tuple[Type[Document], ...],
        handler: Hook,
    ) -> None:
        if phase not in (PRE, POST):
            raise ValueError(f"unknown hook phase {phase!r}")
        if operation not in OPERATIONS:
            raise ValueError(f"unknown operation {operation!r}")
        for cls in model_classes:
            self._handlers[(phase, operation)][cls].append(handler)

    def handlers(self, phase: str, operation: str, model: type) -> List[Hook]:
        """Handlers for ``model``, base classes first."""
        by_class = self._handlers.get((phase, operation), {})
        out: List[Hook] = []
        for cls in reversed(model.__mro__):
            out.extend(by_class.get(cls, ()))
        return out

    async def run(self, phase: str, operation: str, model: type, payload: Any) -> None:
        """Await every matching handler in turn; the first error propagates."""
        for handler in self.handlers(phase, operation, model):
            await handler(payload)


# Global registry instance
hooks = HookRegistry()


def pre(operation: str, *model_classes: Type[Document]) -> Callable[[Hook], Hook]:
    """Decorator: run the coroutine before ``operation`` on ``model_classes``."""

    def decorator(func: Hook) -> Hook:
        hooks.register(PRE, operation, model_classes, func)
        return func

    return decorator


def post(operation: str, *model_classes: Type[Document]) -> Callable[[Hook], Hook]:
    """Decorator: run the coroutine after ``operation`` on ``model_classes``."""

    def decorator(func: Hook) -> Hook:
        hooks.register(POST, operation, model_classes, func)
        return func

    return decorator
