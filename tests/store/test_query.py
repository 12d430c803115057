"""Tests for the query engine contract, SqliteQuery and the engine registry."""

from __future__ import annotations

import pytest

from bulkrun.core.errors import InvalidFieldConditionError, InvalidQueryEngineError
from bulkrun.core.models import RecordStub
from bulkrun.store.query import (
    QueryEngine,
    QueryEngineRegistry,
    SqliteQuery,
    get_default_engines,
    register_query_engine,
)


def node_ids(query: SqliteQuery) -> list:
    return list(query.execute().get("node", {}))


@pytest.fixture()
def query(conn, store) -> SqliteQuery:
    return SqliteQuery(conn).add_type_condition("node")


# ── SqliteQuery ──────────────────────────────────────────────────────────


class TestTypeAndBundleConditions:
    def test_type_only_returns_all_in_insertion_order(self, query):
        assert node_ids(query) == [12, 56, 7, 90]

    def test_results_are_keyed_by_type_with_stubs(self, query):
        results = query.execute()
        assert set(results) == {"node"}
        assert results["node"][56] == RecordStub(record_type="node", id=56, bundle="page")

    def test_no_conditions_returns_every_type(self, conn, store):
        assert set(SqliteQuery(conn).execute()) == {"node", "user"}

    def test_bundle_in(self, query):
        assert node_ids(query.add_bundle_condition(["article"])) == [12, 7, 90]

    def test_bundle_not_in(self, query):
        assert node_ids(query.add_bundle_condition(["article"], "NOT IN")) == [56]

    def test_bundle_rejects_comparison_operator(self, query):
        with pytest.raises(InvalidFieldConditionError):
            query.add_bundle_condition(["article"], "=")


class TestFieldConditions:
    @pytest.mark.parametrize(
        ("field", "operator", "value", "expected"),
        [
            ("status", "=", 1, [12, 56, 90]),
            ("status", "!=", 1, [7]),
            ("status", "<>", 0, [12, 56, 90]),
            ("status", "<", 1, [7]),
            ("status", ">=", 1, [12, 56, 90]),
            ("status", "in", (0,), [7]),
            ("title", "IN", ("About us", "Draft_report"), [56, 7]),
            ("title", "NOT IN", ("About us",), [12, 7, 90]),
            ("title", "CONTAINS", "news", [12, 90]),
            ("title", "STARTS_WITH", "Draft", [7]),
            ("title", "LIKE", "%us", [56]),
        ],
    )
    def test_operators(self, query, field, operator, value, expected):
        assert node_ids(query.add_field_condition(field, operator, value)) == expected

    def test_contains_escapes_wildcards(self, query):
        assert node_ids(query.add_field_condition("title", "CONTAINS", "_")) == [7]

    def test_column_reads_nested_value(self, query):
        assert node_ids(query.add_field_condition("meta", "=", "en", column="lang")) == [12, 7]

    def test_conditions_are_anded(self, query):
        query.add_bundle_condition(["article"])
        query.add_field_condition("status", "=", 1)
        query.add_field_condition("meta", "!=", "de", "lang")
        assert node_ids(query) == [12]

    def test_no_match_gives_empty_mapping(self, query):
        assert query.add_field_condition("status", "=", 42).execute() == {}

    def test_unknown_operator(self, query):
        with pytest.raises(InvalidFieldConditionError, match="Unsupported operator"):
            query.add_field_condition("status", "BETWEEN", 1)

    @pytest.mark.parametrize(("field", "column"), [("status;--", None), ("meta", "lang')")])
    def test_rejects_unsafe_names(self, query, field, column):
        with pytest.raises(InvalidFieldConditionError, match="Invalid field name"):
            query.add_field_condition(field, "=", 1, column)

    def test_in_needs_values(self, query):
        with pytest.raises(InvalidFieldConditionError):
            query.add_field_condition("status", "IN", ())


# ── Registry ─────────────────────────────────────────────────────────────


class PartialEngine(QueryEngine):
    """Implements everything but ``execute``."""

    def add_type_condition(self, record_type):
        return self

    def add_bundle_condition(self, bundles, operator="IN"):
        return self

    def add_field_condition(self, field, operator, value, column=None):
        return self


class ListEngine(PartialEngine):
    def execute(self):
        return {"node": {}}


class TestQueryEngineRegistry:
    def test_default_registry_has_sqlite(self):
        assert get_default_engines().get("sqlite") is SqliteQuery

    def test_unknown_name(self):
        registry = QueryEngineRegistry()
        with pytest.raises(InvalidQueryEngineError, match="No query engine registered as 'Nope'"):
            registry.get("Nope")

    def test_not_a_query_engine(self):
        registry = QueryEngineRegistry()
        registry.register("dict", dict)
        with pytest.raises(InvalidQueryEngineError, match="not a QueryEngine"):
            registry.get("dict")

    def test_missing_capability(self):
        registry = QueryEngineRegistry()
        registry.register("partial", PartialEngine)
        with pytest.raises(InvalidQueryEngineError, match="execute"):
            registry.get("partial")

    def test_decorator_registration(self):
        registry = QueryEngineRegistry()
        decorated = register_query_engine("list", registry=registry)(ListEngine)
        assert decorated is ListEngine
        assert registry.has("list")
        assert registry.names() == ["list"]
        assert registry.get("list") is ListEngine

    def test_copy_is_independent(self):
        registry = QueryEngineRegistry()
        registry.register("list", ListEngine)
        clone = registry.copy()
        clone.register("other", ListEngine)
        assert not registry.has("other")
