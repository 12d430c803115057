"""
Tables backing the bundled record store and durable queue.

Table Registry (TABLES):
    ::

        record_types → bulk_record_types   (known record types)
        bundles      → bulk_bundles        (bundles per record type)
        records      → bulk_records        (record payloads, JSON)
        queues       → bulk_queues         (named durable queues)
        queue_items  → bulk_queue_items    (work items, lease expiry)

``bulk_records.record_id`` has no declared type so SQLite keeps integer
IDs as INTEGER and text IDs as TEXT. ``seq`` is the store's natural
result order.

All statements use ``CREATE TABLE IF NOT EXISTS``; applying them twice is
a no-op.
"""

from __future__ import annotations

from bulkrun.core.protocols import Connection

TABLES = {
    "record_types": "bulk_record_types",
    "bundles": "bulk_bundles",
    "records": "bulk_records",
    "queues": "bulk_queues",
    "queue_items": "bulk_queue_items",
}

RECORD_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS bulk_record_types (
        name TEXT PRIMARY KEY,
        label TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bulk_bundles (
        record_type TEXT NOT NULL,
        name TEXT NOT NULL,
        PRIMARY KEY (record_type, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bulk_records (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        record_type TEXT NOT NULL,
        record_id NOT NULL,
        bundle TEXT NOT NULL,
        data TEXT NOT NULL DEFAULT '{}',
        changed TEXT,
        UNIQUE (record_type, record_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_bulk_records_bundle ON bulk_records (record_type, bundle)",
)

QUEUE_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS bulk_queues (
        name TEXT PRIMARY KEY,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bulk_queue_items (
        item_id INTEGER PRIMARY KEY AUTOINCREMENT,
        queue_name TEXT NOT NULL,
        payload TEXT NOT NULL,
        created_at TEXT NOT NULL,
        expire REAL NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_bulk_queue_items_claim ON bulk_queue_items (queue_name, expire, item_id)",
)


def apply_schema(conn: Connection, statements: tuple[str, ...]) -> None:
    for statement in statements:
        conn.execute(statement)
    conn.commit()


def initialize_database(conn: Connection) -> list[str]:
    """Create record and queue tables. Returns the table names."""
    apply_schema(conn, RECORD_SCHEMA)
    apply_schema(conn, QUEUE_SCHEMA)
    return list(TABLES.values())
