"""
Protocol definitions for bulkrun collaborators.

The pipeline depends on the *shape* of its collaborators, not on their
implementation. The bundled SQLite store and queue satisfy these
protocols, and so does any test double with the same methods.

Architecture:
    ::

        protocols.py
        ├── Connection      : sync DB protocol (sqlite3 adapter, psycopg, ...)
        ├── RecordStore     : load records by type + IDs, type/bundle metadata
        └── WorkQueue       : durable queue: ensure/enqueue/claim/delete/release

The query engine contract is an abstract base class instead of a protocol
(:class:`bulkrun.store.query.QueryEngine`): substituted engines must be a
recognised specialisation of it, not merely look like one.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from bulkrun.core.models import ClaimedItem, Record, RecordID, WorkItem


@runtime_checkable
class Connection(Protocol):
    """Minimal SYNCHRONOUS connection interface for database operations."""

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for each parameter tuple."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from the last query."""
        ...

    def fetchall(self) -> list[Any]:
        """Fetch all rows from the last query."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback the current transaction."""
        ...


@runtime_checkable
class RecordStore(Protocol):
    """Record storage as seen by the pipeline.

    ``load_records`` returns records for the requested IDs that still
    exist. Missing IDs are silently absent from the mapping.
    """

    def record_types(self) -> set[str]: ...

    def bundles(self, record_type: str) -> set[str]: ...

    def load_records(self, record_type: str, ids: Sequence[RecordID]) -> dict[RecordID, Record]: ...

    def save_record(self, record: Record) -> None: ...


@runtime_checkable
class WorkQueue(Protocol):
    """Durable queue with at-least-once delivery and no ordering guarantee."""

    name: str

    def ensure_exists(self) -> None: ...

    def enqueue(self, item: WorkItem) -> int: ...

    def claim(self, lease_seconds: int = 300) -> ClaimedItem | None: ...

    def delete(self, item_id: int) -> None: ...

    def release(self, item_id: int) -> None: ...

    def count(self) -> int: ...
