"""Durable work queue backed by SQLite.

WHY
───
Queue mode hands every selected record to a durable queue so the work
survives the CLI process and can be consumed later, by one or many
workers. The queue offers at-least-once delivery: a claimed item is
leased, and if the consumer never deletes it the lease expires and the
item becomes claimable again.

ARCHITECTURE
────────────
::

    SqliteWorkQueue(conn, name)
      ├── .ensure_exists()         ─ idempotent create
      ├── .enqueue(item)           ─ append one WorkItem, returns item_id
      ├── .claim(lease_seconds)    ─ lease the oldest claimable item
      ├── .delete(item_id)         ─ item processed, drop it
      ├── .release(item_id)        ─ give an item back before its lease ends
      └── .count()                 ─ items left (claimed or not)

No ordering guarantee is made to consumers. Every driver error is
re-raised as :class:`QueueUnavailableError`.

Related modules:
    sink.py   : producer side (QueueSink)
    worker.py : consumer side (QueueWorker)
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from bulkrun.core.errors import QueueUnavailableError
from bulkrun.core.models import ClaimedItem, WorkItem, utcnow
from bulkrun.core.protocols import Connection
from bulkrun.store.schema import QUEUE_SCHEMA, apply_schema


class SqliteWorkQueue:
    """Named queue stored in ``bulk_queue_items``."""

    def __init__(self, conn: Connection, name: str):
        self._conn = conn
        self.name = name

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise QueueUnavailableError(
                self.name, f"Queue '{self.name}' unavailable during {action}: {exc}", cause=exc
            ) from exc

    def ensure_exists(self) -> None:
        """Create the queue if needed. Safe to call on an existing queue."""
        with self._guard("create"):
            apply_schema(self._conn, QUEUE_SCHEMA)
            self._conn.execute(
                "INSERT OR IGNORE INTO bulk_queues (name, created_at) VALUES (?, ?)",
                (self.name, utcnow().isoformat()),
            )
            self._conn.commit()

    def enqueue(self, item: WorkItem) -> int:
        with self._guard("enqueue"):
            cursor = self._conn.execute(
                "INSERT INTO bulk_queue_items (queue_name, payload, created_at) VALUES (?, ?, ?)",
                (self.name, item.to_json(), utcnow().isoformat()),
            )
            self._conn.commit()
            return cursor.lastrowid

    def claim(self, lease_seconds: int = 300) -> ClaimedItem | None:
        """Lease the oldest claimable item, or return ``None`` if there is none."""
        now = time.time()
        with self._guard("claim"):
            self._conn.execute(
                """
                SELECT item_id, payload, created_at FROM bulk_queue_items
                WHERE queue_name = ? AND expire < ?
                ORDER BY item_id LIMIT 1
                """,
                (self.name, now),
            )
            row = self._conn.fetchone()
            if row is None:
                return None
            cursor = self._conn.execute(
                "UPDATE bulk_queue_items SET expire = ? WHERE item_id = ? AND expire < ?",
                (now + lease_seconds, row["item_id"], now),
            )
            self._conn.commit()
            if cursor.rowcount == 0:
                # Another consumer leased it between SELECT and UPDATE.
                return None
        return ClaimedItem(
            item_id=row["item_id"],
            item=WorkItem.from_json(row["payload"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def delete(self, item_id: int) -> None:
        with self._guard("delete"):
            self._conn.execute("DELETE FROM bulk_queue_items WHERE item_id = ?", (item_id,))
            self._conn.commit()

    def release(self, item_id: int) -> None:
        with self._guard("release"):
            self._conn.execute("UPDATE bulk_queue_items SET expire = 0 WHERE item_id = ?", (item_id,))
            self._conn.commit()

    def count(self) -> int:
        with self._guard("count"):
            self._conn.execute(
                "SELECT COUNT(*) AS n FROM bulk_queue_items WHERE queue_name = ?",
                (self.name,),
            )
            return self._conn.fetchone()["n"]

    def __repr__(self) -> str:
        return f"SqliteWorkQueue(name={self.name!r})"
