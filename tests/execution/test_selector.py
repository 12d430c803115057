"""Tests for Selector: resolving criteria into record IDs."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from bulkrun.core.errors import (
    EmptySelectionError,
    InvalidBundleError,
    InvalidFieldConditionError,
    InvalidQueryEngineError,
    InvalidTypeError,
)
from bulkrun.core.models import FieldCondition, SelectionCriteria
from bulkrun.core.settings import RunConfig
from bulkrun.execution.selector import Selector
from bulkrun.store.query import QueryEngineRegistry, SqliteQuery


@pytest.fixture()
def selector(store, conn) -> Selector:
    return Selector(store, conn)


class TestExplicitIds:
    def test_returned_unmodified(self, selector):
        assert selector.resolve("node", SelectionCriteria(ids=(56, 12, 404))) == [56, 12, 404]

    def test_filters_are_ignored(self, selector):
        criteria = SelectionCriteria(
            ids=(12, 56),
            bundles=("no_such_bundle",),
            fields=(FieldCondition("status", "=", 99),),
        )
        assert selector.resolve("node", criteria) == [12, 56]

    def test_type_is_still_validated(self, selector):
        with pytest.raises(InvalidTypeError):
            selector.resolve("nod", SelectionCriteria(ids=(12,)))

    def test_no_query_is_built(self, store, conn):
        engines = MagicMock(spec=QueryEngineRegistry)
        Selector(store, conn, engines=engines).resolve("node", SelectionCriteria(ids=(12,)))
        engines.get.assert_not_called()


class TestQuerySelection:
    def test_type_only_selects_every_record(self, selector):
        assert selector.resolve("node", SelectionCriteria()) == [12, 56, 7, 90]

    def test_bundles(self, selector):
        assert selector.resolve("node", SelectionCriteria(bundles=("article",))) == [12, 7, 90]

    def test_bundles_and_fields(self, selector):
        criteria = SelectionCriteria(
            bundles=("article",),
            fields=(FieldCondition("status", "=", 1), FieldCondition("meta", "=", "en", column="lang")),
        )
        assert selector.resolve("node", criteria) == [12]

    def test_string_ids(self, selector):
        assert selector.resolve("user", SelectionCriteria()) == ["alice"]


class TestSetupErrors:
    def test_unknown_type(self, selector):
        with pytest.raises(InvalidTypeError):
            selector.resolve("nod", SelectionCriteria())

    def test_unknown_bundle(self, selector):
        with pytest.raises(InvalidBundleError) as exc_info:
            selector.resolve("node", SelectionCriteria(bundles=("article", "blog")))
        assert exc_info.value.bundles == ["blog"]

    def test_bundle_of_another_type(self, selector):
        with pytest.raises(InvalidBundleError):
            selector.resolve("node", SelectionCriteria(bundles=("user",)))

    def test_empty_result(self, selector):
        criteria = SelectionCriteria(fields=(FieldCondition("status", "=", 42),))
        with pytest.raises(EmptySelectionError):
            selector.resolve("node", criteria)

    def test_bad_operator(self, selector):
        criteria = SelectionCriteria(fields=(FieldCondition("status", "BETWEEN", 1),))
        with pytest.raises(InvalidFieldConditionError):
            selector.resolve("node", criteria)

    def test_unknown_engine_fails_before_loading(self, conn):
        store = MagicMock()
        store.record_types.return_value = {"node"}
        selector = Selector(store, conn, RunConfig(query_engine="Nope"))

        with pytest.raises(InvalidQueryEngineError):
            selector.resolve("node", SelectionCriteria(bundles=("article",)))
        store.bundles.assert_not_called()
        store.load_records.assert_not_called()

    def test_engine_without_capabilities(self, store, conn):
        class Incomplete:
            def __init__(self, conn):
                pass

        engines = QueryEngineRegistry()
        engines.register("incomplete", Incomplete)
        selector = Selector(store, conn, RunConfig(query_engine="incomplete"), engines=engines)

        with pytest.raises(InvalidQueryEngineError):
            selector.resolve("node", SelectionCriteria())


class TestCustomEngine:
    def test_registered_engine_is_used(self, store, conn):
        class RecordingQuery(SqliteQuery):
            instances: list[RecordingQuery] = []

            def __init__(self, conn):
                super().__init__(conn)
                RecordingQuery.instances.append(self)

        engines = QueryEngineRegistry()
        engines.register("recording", RecordingQuery)
        selector = Selector(store, conn, RunConfig(query_engine="recording"), engines=engines)

        assert selector.resolve("node", SelectionCriteria(bundles=("page",))) == [56]
        assert len(RecordingQuery.instances) == 1
