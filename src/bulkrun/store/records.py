"""SQLite record store.

Holds record types, their bundles and the records themselves. Record
payloads are stored as JSON in ``bulk_records.data`` so the query engine
can filter on any field with ``json_extract``.

ARCHITECTURE
────────────
::

    SqliteRecordStore(conn)
      ├── .record_types()                ─ known types
      ├── .bundles(record_type)          ─ bundles of one type
      ├── .load_records(type, ids)       ─ one batched fetch per chunk
      ├── .save_record(record)           ─ persist fields, bump ``changed``
      ├── .add_record_type(name, bundles)
      └── .add_record(type, id, bundle, fields)

Missing IDs are simply absent from ``load_records`` results; deciding
what that means is the caller's job.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from bulkrun.core.errors import StorageError
from bulkrun.core.logging import get_logger
from bulkrun.core.models import Record, RecordID, utcnow
from bulkrun.core.protocols import Connection

logger = get_logger(__name__)

# SQLite's default SQLITE_MAX_VARIABLE_NUMBER on older builds
_MAX_PARAMS = 999


class SqliteRecordStore:
    """Record store backed by the ``bulk_*`` tables."""

    def __init__(self, conn: Connection):
        self._conn = conn

    @property
    def conn(self) -> Connection:
        return self._conn

    # ── Metadata ──────────────────────────────────────────────────────

    def record_types(self) -> set[str]:
        self._conn.execute("SELECT name FROM bulk_record_types")
        return {row["name"] for row in self._conn.fetchall()}

    def bundles(self, record_type: str) -> set[str]:
        self._conn.execute(
            "SELECT name FROM bulk_bundles WHERE record_type = ?",
            (record_type,),
        )
        return {row["name"] for row in self._conn.fetchall()}

    def add_record_type(
        self,
        name: str,
        bundles: Iterable[str] = (),
        label: str | None = None,
    ) -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO bulk_record_types (name, label) VALUES (?, ?)",
            (name, label or name),
        )
        self._conn.executemany(
            "INSERT OR IGNORE INTO bulk_bundles (record_type, name) VALUES (?, ?)",
            [(name, bundle) for bundle in bundles],
        )
        self._conn.commit()

    # ── Records ───────────────────────────────────────────────────────

    def add_record(
        self,
        record_type: str,
        record_id: RecordID,
        bundle: str,
        fields: dict[str, Any] | None = None,
    ) -> Record:
        record = Record(
            record_type=record_type,
            id=record_id,
            bundle=bundle,
            fields=dict(fields or {}),
            changed=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO bulk_records (record_type, record_id, bundle, data, changed)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.record_type,
                record.id,
                record.bundle,
                json.dumps(record.fields),
                record.changed.isoformat(),
            ),
        )
        self._conn.commit()
        return record

    def load_records(self, record_type: str, ids: Sequence[RecordID]) -> dict[RecordID, Record]:
        """Load records of ``record_type`` for ``ids`` in one batched fetch.

        Returns a mapping in the order of ``ids``; IDs that no longer exist
        are left out.
        """
        if not ids:
            return {}

        found: dict[RecordID, Record] = {}
        # one parameter is taken by record_type
        step = _MAX_PARAMS - 1
        for start in range(0, len(ids), step):
            window = list(ids[start : start + step])
            placeholders = ", ".join("?" for _ in window)
            self._conn.execute(
                f"""
                SELECT record_type, record_id, bundle, data, changed
                FROM bulk_records
                WHERE record_type = ? AND record_id IN ({placeholders})
                """,
                (record_type, *window),
            )
            for row in self._conn.fetchall():
                record = self._row_to_record(row)
                found[record.id] = record

        return {record_id: found[record_id] for record_id in ids if record_id in found}

    def save_record(self, record: Record) -> None:
        record.changed = utcnow()
        self._conn.execute(
            """
            UPDATE bulk_records
            SET bundle = ?, data = ?, changed = ?
            WHERE record_type = ? AND record_id = ?
            """,
            (
                record.bundle,
                json.dumps(record.fields),
                record.changed.isoformat(),
                record.record_type,
                record.id,
            ),
        )
        if self._conn.execute("SELECT changes() AS n").fetchone()["n"] == 0:
            raise StorageError(
                f"{record.record_type} {record.id} no longer exists"
            ).with_context(record_type=record.record_type, record_id=record.id)
        self._conn.commit()
        logger.debug("record_saved", record_type=record.record_type, record_id=record.id)

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _row_to_record(row: Any) -> Record:
        changed = row["changed"]
        return Record(
            record_type=row["record_type"],
            id=row["record_id"],
            bundle=row["bundle"],
            fields=json.loads(row["data"] or "{}"),
            changed=datetime.fromisoformat(changed) if changed else None,
        )
