"""Bundled SQLite implementations of the record store and query engine."""

from bulkrun.store.query import (
    QueryEngine,
    QueryEngineRegistry,
    SqliteQuery,
    get_default_engines,
    register_query_engine,
)
from bulkrun.store.records import SqliteRecordStore
from bulkrun.store.schema import initialize_database
from bulkrun.store.sqlite_conn import SqliteConnection

__all__ = [
    "QueryEngine",
    "QueryEngineRegistry",
    "SqliteConnection",
    "SqliteQuery",
    "SqliteRecordStore",
    "get_default_engines",
    "initialize_database",
    "register_query_engine",
]
