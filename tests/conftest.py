"""Shared fixtures for the dochistory test suite."""

from collections.abc import Generator

import pytest

from dochistory import bind_stores
from dochistory.persistence.inmemory import InMemoryDocumentStore, InMemoryHistoryStore


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    """A fresh primary store for each test."""
    return InMemoryDocumentStore()


@pytest.fixture
def history() -> InMemoryHistoryStore:
    """A fresh history store for each test."""
    return InMemoryHistoryStore()


@pytest.fixture
def stores(
    documents: InMemoryDocumentStore, history: InMemoryHistoryStore
) -> Generator[tuple[InMemoryDocumentStore, InMemoryHistoryStore], None, None]:
    """Bind the in-memory stores to every Document model."""
    bind_stores(documents, history)
    yield documents, history
