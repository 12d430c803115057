"""Selector: resolves the working ID set for a run.

Two branches, exactly one active per run:

- **Explicit IDs**: returned unmodified. Bundle and field filters are
  ignored, and so is the query engine; the operator is trusted to have
  picked valid IDs. The record type is still validated.
- **Filtered query**: ``type = T AND bundle IN (...) AND field_1 AND ...``
  built on the configured query engine, in the order the conditions were
  given. IDs come back in the engine's natural order; nothing re-sorts
  them.

Every failure is a :class:`SelectionError` raised before any side effect.
"""

from __future__ import annotations

from bulkrun.core.errors import EmptySelectionError, InvalidBundleError, InvalidTypeError
from bulkrun.core.logging import get_logger
from bulkrun.core.models import RecordID, SelectionCriteria
from bulkrun.core.protocols import Connection, RecordStore
from bulkrun.core.settings import RunConfig
from bulkrun.store.query import QueryEngine, QueryEngineRegistry, get_default_engines

logger = get_logger(__name__)


class Selector:
    """Resolve :class:`SelectionCriteria` into a list of record IDs."""

    def __init__(
        self,
        store: RecordStore,
        conn: Connection,
        config: RunConfig | None = None,
        *,
        engines: QueryEngineRegistry | None = None,
    ):
        self._store = store
        self._conn = conn
        self._config = config or RunConfig()
        self._engines = engines or get_default_engines()

    def resolve(self, record_type: str, criteria: SelectionCriteria) -> list[RecordID]:
        """Return the IDs to process.

        Raises:
            InvalidTypeError: unknown record type.
            InvalidBundleError: a bundle does not exist for the type.
            InvalidQueryEngineError: the configured engine is unregistered
                or does not implement the query capability set.
            InvalidFieldConditionError: a field condition is malformed.
            EmptySelectionError: nothing matched.
        """
        if record_type not in self._store.record_types():
            raise InvalidTypeError(record_type)

        if criteria.is_explicit:
            if criteria.bundles or criteria.fields:
                logger.info(
                    "selector.filters_ignored",
                    record_type=record_type,
                    bundles=list(criteria.bundles),
                    fields=len(criteria.fields),
                )
            return list(criteria.ids)

        engine_cls = self._engines.get(self._config.query_engine)

        if criteria.bundles:
            unknown = [b for b in criteria.bundles if b not in self._store.bundles(record_type)]
            if unknown:
                raise InvalidBundleError(record_type, unknown)

        query = self._build_query(engine_cls, record_type, criteria)
        results = query.execute()
        ids = list(results.get(record_type, {}).keys())

        if not ids:
            raise EmptySelectionError(record_type)

        logger.info(
            "selector.resolved",
            record_type=record_type,
            count=len(ids),
            engine=self._config.query_engine,
        )
        return ids

    def _build_query(
        self,
        engine_cls: type[QueryEngine],
        record_type: str,
        criteria: SelectionCriteria,
    ) -> QueryEngine:
        query = engine_cls(self._conn)
        query.add_type_condition(record_type)
        if criteria.bundles:
            query.add_bundle_condition(list(criteria.bundles), "IN")
        for condition in criteria.fields:
            query.add_field_condition(
                condition.field,
                condition.operator,
                condition.value,
                condition.column,
            )
        return query
