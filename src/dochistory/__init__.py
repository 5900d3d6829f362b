"""
Public surface for dochistory.
Importing this module does **not** touch the database; call
`await dochistory.init_dochistory(engine)` (or `DocHistory.init()`) during
application start-up.
"""

from .bootstrap import bind_stores, init_dochistory
from .core.diff import get_diff
from .core.history import HistoryAction, HistoryRecord, build_history_record
from .core.metadata import (
    AsyncDerive,
    MetadataDescriptor,
    StaticCopy,
    SyncDerive,
    attach_metadata,
)
from .core.options import HistoryOptions, history_collection_name
from .core.record import Document
from .events import post, pre
from .exceptions import (
    ClearError,
    HistoryError,
    MetadataError,
    PersistenceError,
    SnapshotResolutionError,
)
from .persistence.base import HistoryModel
from .plugin import HistoryPlugin, history_plugin
from .runtime import DocHistory

__all__ = [
    "AsyncDerive",
    "ClearError",
    "DocHistory",
    "Document",
    "HistoryAction",
    "HistoryError",
    "HistoryModel",
    "HistoryOptions",
    "HistoryPlugin",
    "HistoryRecord",
    "MetadataDescriptor",
    "MetadataError",
    "PersistenceError",
    "SnapshotResolutionError",
    "StaticCopy",
    "SyncDerive",
    "attach_metadata",
    "bind_stores",
    "build_history_record",
    "get_diff",
    "history_collection_name",
    "history_plugin",
    "init_dochistory",
    "post",
    "pre",
]
