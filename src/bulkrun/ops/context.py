"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context carries the collaborators of a run (connection,
record store, callback and query engine registries) together with the
explicit :class:`RunConfig`, so nothing downstream reads ambient settings.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bulkrun.core.protocols import Connection, RecordStore
from bulkrun.core.settings import BulkRunSettings, RunConfig
from bulkrun.execution.callbacks import register_builtin_callbacks
from bulkrun.execution.registry import CallbackRegistry, get_default_registry
from bulkrun.store.query import QueryEngineRegistry, get_default_engines
from bulkrun.store.records import SqliteRecordStore
from bulkrun.store.schema import initialize_database
from bulkrun.store.sqlite_conn import SqliteConnection


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        conn: Database connection satisfying :class:`bulkrun.core.protocols.Connection`.
        store: Record store used for loading and saving records.
        config: Explicit run configuration (chunk size, queue, limits).
        callbacks: Registry that callback names are resolved against.
        engines: Registry of selectable query engines.
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request: ``"cli"``, ``"sdk"`` or ``"test"``.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    conn: Connection
    store: RecordStore
    config: RunConfig = field(default_factory=RunConfig)
    callbacks: CallbackRegistry = field(default_factory=CallbackRegistry)
    engines: QueryEngineRegistry = field(default_factory=get_default_engines)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    metadata: dict[str, Any] = field(default_factory=dict)


def make_context(
    database: str | Path | None = None,
    *,
    settings: BulkRunSettings | None = None,
    caller: str = "sdk",
) -> OperationContext:
    """Open the SQLite database and wire an :class:`OperationContext`.

    Tables are created if missing. Callbacks registered globally with
    :func:`~bulkrun.execution.registry.register_callback` are available
    alongside the built-ins.
    """
    settings = settings or BulkRunSettings()
    conn = SqliteConnection(database or settings.database)
    initialize_database(conn)
    store = SqliteRecordStore(conn)
    callbacks = register_builtin_callbacks(get_default_registry().copy(), store)
    return OperationContext(
        conn=conn,
        store=store,
        config=RunConfig.from_settings(settings),
        callbacks=callbacks,
        engines=get_default_engines().copy(),
        caller=caller,
    )
