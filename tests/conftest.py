"""
Shared pytest fixtures for bulkrun tests.

This module provides:
- Registry and logging cleanup for test isolation
- An in-memory SQLite connection with the bulkrun tables
- A record store seeded with a small ``node`` / ``user`` data set
- An ``OperationContext`` wired to that store

Seeded data (insertion order)::

    node 12  article  status=1  title="Breaking news"       meta.lang=en
    node 56  page     status=1  title="About us"            meta.lang=fr
    node 7   article  status=0  title="Draft_report"        meta.lang=en
    node 90  article  status=1  title="Weekly news digest"  meta.lang=de
    user "alice"  user
"""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from bulkrun.execution.callbacks import register_builtin_callbacks
from bulkrun.execution.registry import CallbackRegistry, reset_default_registry
from bulkrun.ops.context import OperationContext
from bulkrun.store.query import get_default_engines
from bulkrun.store.records import SqliteRecordStore
from bulkrun.store.schema import initialize_database
from bulkrun.store.sqlite_conn import SqliteConnection

ARTICLE_IDS = [12, 7, 90]
NODE_IDS = [12, 56, 7, 90]


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_registries():
    """Reset the global callback registry around each test."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any structlog configuration a CLI test installed."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Storage
# =============================================================================


def seed(store: SqliteRecordStore) -> SqliteRecordStore:
    store.add_record_type("node", ["article", "page"], label="Content")
    store.add_record_type("user", ["user"])
    store.add_record("node", 12, "article", {"status": 1, "title": "Breaking news", "meta": {"lang": "en"}})
    store.add_record("node", 56, "page", {"status": 1, "title": "About us", "meta": {"lang": "fr"}})
    store.add_record("node", 7, "article", {"status": 0, "title": "Draft_report", "meta": {"lang": "en"}})
    store.add_record(
        "node", 90, "article", {"status": 1, "title": "Weekly news digest", "meta": {"lang": "de"}}
    )
    store.add_record("user", "alice", "user", {"status": 1, "name": "Alice"})
    return store


@pytest.fixture()
def conn() -> SqliteConnection:
    """In-memory SQLite with the record and queue tables."""
    connection = SqliteConnection(":memory:")
    initialize_database(connection)
    yield connection
    connection.close()


@pytest.fixture()
def store(conn: SqliteConnection) -> SqliteRecordStore:
    """Record store seeded with the module-level data set."""
    return seed(SqliteRecordStore(conn))


@pytest.fixture()
def registry(store: SqliteRecordStore) -> CallbackRegistry:
    """Injectable registry holding the built-in callbacks."""
    return register_builtin_callbacks(CallbackRegistry(), store)


@pytest.fixture()
def ctx(conn: SqliteConnection, store: SqliteRecordStore, registry: CallbackRegistry) -> OperationContext:
    """OperationContext wired to the seeded in-memory store."""
    return OperationContext(
        conn=conn,
        store=store,
        callbacks=registry,
        engines=get_default_engines().copy(),
        caller="test",
    )


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """SQLite file seeded with the same data set, for CLI tests."""
    path = tmp_path / "bulkrun.db"
    connection = SqliteConnection(path)
    initialize_database(connection)
    seed(SqliteRecordStore(connection))
    connection.close()
    return path
