"""
Per-model history plugin options.

Both snake_case names and the camelCase names used by existing
configurations are accepted.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .metadata import MetadataDescriptor, coerce_descriptors

HISTORY_SUFFIX = "_history"

# (key, new_value, old_value) -> {"diff": value} | falsy
CustomDiffAlgo = Callable[[str, Any, Any], Mapping[str, Any] | None]


def history_collection_name(collection: str, custom: str | None = None) -> str:
    """Name of the history collection kept for ``collection``."""
    return custom or f"{collection}{HISTORY_SUFFIX}"


class HistoryOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    custom_collection_name: str | None = Field(default=None, alias="customCollectionName")
    custom_diff_algo: CustomDiffAlgo | None = Field(default=None, alias="customDiffAlgo")
    diff_only: bool = Field(default=False, alias="diffOnly")
    metadata: tuple[Any, ...] = ()

    @field_validator("metadata", mode="before")
    @classmethod
    def _descriptors(cls, value: Any) -> tuple[MetadataDescriptor, ...]:
        return coerce_descriptors(value)
