"""Query engines: conjunctive record queries with a substitutable backend.

WHY
───
Filtered selections ("every article node with status = 1") are expressed
against a small capability set rather than raw SQL, so an operator can
swap the engine (``--efq-class``) without touching the pipeline. Engines
are registered explicitly by name; nothing is imported from a name string
at runtime.

ARCHITECTURE
────────────
::

    QueryEngine (ABC)                      QueryEngineRegistry
      ├── .add_type_condition(type)          ├── .register(name, cls)
      ├── .add_bundle_condition(bundles)     ├── .get(name) → validated cls
      ├── .add_field_condition(...)          └── .names()
      └── .execute() → {type: {id: stub}}
            │                              register_query_engine(name)
      SqliteQuery  ("sqlite")                ─ decorator, default registry

All conditions are ANDed in the order they were added. Results come back
in the engine's natural order (insertion order for ``SqliteQuery``).

Related modules:
    execution/selector.py : resolves engine names and runs the query
    store/records.py      : the tables ``SqliteQuery`` reads
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from bulkrun.core.errors import InvalidFieldConditionError, InvalidQueryEngineError
from bulkrun.core.models import RecordID, RecordStub
from bulkrun.core.protocols import Connection

CAPABILITIES: tuple[str, ...] = (
    "add_type_condition",
    "add_bundle_condition",
    "add_field_condition",
    "execute",
)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_COMPARISON_OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">="})
_LIST_OPERATORS = frozenset({"IN", "NOT IN"})
_PATTERN_OPERATORS = frozenset({"LIKE", "CONTAINS", "STARTS_WITH"})

FIELD_OPERATORS = _COMPARISON_OPERATORS | _LIST_OPERATORS | _PATTERN_OPERATORS


class QueryEngine(ABC):
    """Base contract for record query engines."""

    def __init__(self, conn: Connection):
        self._conn = conn

    @abstractmethod
    def add_type_condition(self, record_type: str) -> QueryEngine:
        """Restrict results to one record type."""

    @abstractmethod
    def add_bundle_condition(self, bundles: Iterable[str], operator: str = "IN") -> QueryEngine:
        """Restrict results by bundle membership."""

    @abstractmethod
    def add_field_condition(
        self,
        field: str,
        operator: str,
        value: Any,
        column: str | None = None,
    ) -> QueryEngine:
        """Restrict results by a field value."""

    @abstractmethod
    def execute(self) -> dict[str, dict[RecordID, RecordStub]]:
        """Run the query. Returns ``{record_type: {record_id: stub}}``."""


class SqliteQuery(QueryEngine):
    """Query engine over the ``bulk_records`` table."""

    def __init__(self, conn: Connection):
        super().__init__(conn)
        self._clauses: list[str] = []
        self._params: list[Any] = []

    def add_type_condition(self, record_type: str) -> SqliteQuery:
        self._clauses.append("record_type = ?")
        self._params.append(record_type)
        return self

    def add_bundle_condition(self, bundles: Iterable[str], operator: str = "IN") -> SqliteQuery:
        names = list(bundles)
        op = operator.upper()
        if op not in _LIST_OPERATORS:
            raise InvalidFieldConditionError(f"Unsupported bundle operator '{operator}'")
        if not names:
            return self
        placeholders = ", ".join("?" for _ in names)
        self._clauses.append(f"bundle {op} ({placeholders})")
        self._params.extend(names)
        return self

    def add_field_condition(
        self,
        field: str,
        operator: str,
        value: Any,
        column: str | None = None,
    ) -> SqliteQuery:
        for part in (field, column):
            if part is not None and not _FIELD_NAME.match(part):
                raise InvalidFieldConditionError(f"Invalid field name '{part}'")

        op = operator.strip().upper()
        if op not in FIELD_OPERATORS:
            raise InvalidFieldConditionError(
                f"Unsupported operator '{operator}' (expected one of {', '.join(sorted(FIELD_OPERATORS))})"
            )

        path = f"$.{field}" if column is None else f"$.{field}.{column}"
        target = "json_extract(data, ?)"

        if op in _COMPARISON_OPERATORS:
            self._clauses.append(f"{target} {op} ?")
            self._params.extend([path, value])
        elif op in _LIST_OPERATORS:
            values = list(value) if isinstance(value, list | tuple | set) else [value]
            if not values:
                raise InvalidFieldConditionError(f"{op} needs at least one value for '{field}'")
            placeholders = ", ".join("?" for _ in values)
            self._clauses.append(f"{target} {op} ({placeholders})")
            self._params.extend([path, *values])
        else:
            if op == "LIKE":
                pattern = str(value)
            elif op == "CONTAINS":
                pattern = f"%{_escape_like(str(value))}%"
            else:
                pattern = f"{_escape_like(str(value))}%"
            self._clauses.append(f"{target} LIKE ? ESCAPE '\\'")
            self._params.extend([path, pattern])
        return self

    def execute(self) -> dict[str, dict[RecordID, RecordStub]]:
        where = " AND ".join(self._clauses) if self._clauses else "1=1"
        self._conn.execute(
            f"SELECT record_type, record_id, bundle FROM bulk_records WHERE {where} ORDER BY seq",
            tuple(self._params),
        )
        results: dict[str, dict[RecordID, RecordStub]] = {}
        for row in self._conn.fetchall():
            stub = RecordStub(record_type=row["record_type"], id=row["record_id"], bundle=row["bundle"])
            results.setdefault(stub.record_type, {})[stub.id] = stub
        return results


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# === REGISTRY ===


def validate_engine(name: str, engine_cls: Any) -> type[QueryEngine]:
    """Check that ``engine_cls`` is a usable :class:`QueryEngine` subclass.

    Raises:
        InvalidQueryEngineError: if it is not a class, not a ``QueryEngine``
            specialisation, or leaves part of the capability set abstract
            or non-callable.
    """
    if not isinstance(engine_cls, type) or not issubclass(engine_cls, QueryEngine):
        raise InvalidQueryEngineError(name, f"'{name}' is not a QueryEngine implementation")
    missing = sorted(getattr(engine_cls, "__abstractmethods__", frozenset()))
    missing += [cap for cap in CAPABILITIES if not callable(getattr(engine_cls, cap, None))]
    if missing:
        raise InvalidQueryEngineError(
            name, f"'{name}' does not implement: {', '.join(sorted(set(missing)))}"
        )
    return engine_cls


class QueryEngineRegistry:
    """Name → query engine class lookup.

    Example:
        >>> registry = QueryEngineRegistry()
        >>> registry.register("sqlite", SqliteQuery)
        >>> registry.get("sqlite")
        <class 'bulkrun.store.query.SqliteQuery'>
    """

    def __init__(self):
        self._engines: dict[str, type] = {}

    def register(self, name: str, engine_cls: type) -> None:
        self._engines[name] = engine_cls

    def get(self, name: str) -> type[QueryEngine]:
        """Return the validated engine class registered as ``name``.

        Raises:
            InvalidQueryEngineError: If no engine is registered under the
                name or the registered class lacks the capability set.
        """
        if name not in self._engines:
            available = ", ".join(sorted(self._engines)) or "none"
            raise InvalidQueryEngineError(
                name, f"No query engine registered as '{name}'. Available: {available}"
            )
        return validate_engine(name, self._engines[name])

    def has(self, name: str) -> bool:
        return name in self._engines

    def names(self) -> list[str]:
        return sorted(self._engines)

    def copy(self) -> QueryEngineRegistry:
        clone = QueryEngineRegistry()
        clone._engines = dict(self._engines)
        return clone


_default_engines: QueryEngineRegistry | None = None


def get_default_engines() -> QueryEngineRegistry:
    """Get the global default query engine registry (created lazily)."""
    global _default_engines
    if _default_engines is None:
        _default_engines = QueryEngineRegistry()
        _default_engines.register("sqlite", SqliteQuery)
    return _default_engines


def register_query_engine(
    name: str,
    registry: QueryEngineRegistry | None = None,
) -> Callable[[type], type]:
    """Class decorator registering a query engine under ``name``."""

    def decorator(engine_cls: type) -> type:
        (registry or get_default_engines()).register(name, engine_cls)
        return engine_cls

    return decorator
