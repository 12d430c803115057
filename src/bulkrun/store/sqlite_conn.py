"""SQLite behind the :class:`~bulkrun.core.protocols.Connection` protocol.

The record store, query engines and work queue only see ``execute`` /
``fetchone`` / ``fetchall`` / ``commit``; this adapter keeps one cursor so
a fetch always reads the result of the last ``execute``. File databases
get their parent directory created on open.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any


class SqliteConnection:
    """One ``sqlite3`` connection plus its single working cursor."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._cursor = self._conn.cursor()

    def execute(self, sql: str, params: tuple = ()) -> Any:
        return self._cursor.execute(sql, params)

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        return self._cursor.executemany(sql, params)

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()
