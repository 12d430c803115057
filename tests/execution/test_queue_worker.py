"""Tests for QueueWorker: consuming work items."""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import pytest

from bulkrun.core.models import WorkItem
from bulkrun.execution.queue import SqliteWorkQueue
from bulkrun.execution.sink import QueueSink
from bulkrun.execution.worker import QueueWorker
from bulkrun.store.records import SqliteRecordStore


@pytest.fixture()
def queue(conn) -> SqliteWorkQueue:
    q = SqliteWorkQueue(conn, "bulkrun_callbacks")
    q.ensure_exists()
    return q


class TestDrain:
    def test_processes_and_deletes(self, queue, store, registry):
        QueueSink(queue).enqueue_all([12, 56], "node", "unpublish")

        aggregate = QueueWorker(queue, store, registry=registry).drain()

        assert aggregate.success_count == 2
        assert queue.count() == 0
        records = store.load_records("node", [12, 56])
        assert [r.fields["status"] for r in records.values()] == [0, 0]

    def test_limit(self, queue, store, registry):
        QueueSink(queue).enqueue_all([12, 56, 7], "node", "noop")
        aggregate = QueueWorker(queue, store, registry=registry).drain(limit=2)
        assert aggregate.success_count == 2
        assert queue.count() == 1

    def test_failure_signal_is_counted_and_deleted(self, queue, store, registry):
        queue.enqueue(WorkItem("node", 12, "fail"))
        aggregate = QueueWorker(queue, store, registry=registry).drain()
        assert aggregate.error_count == 1
        assert queue.count() == 0

    def test_missing_record_is_dropped(self, queue, store, registry):
        queue.enqueue(WorkItem("node", 404, "noop"))
        aggregate = QueueWorker(queue, store, registry=registry).drain()
        assert aggregate.missing_count == 1
        assert queue.count() == 0

    def test_unknown_callback_is_counted_and_dropped(self, queue, store, registry):
        queue.enqueue(WorkItem("node", 12, "renamed_since"))
        aggregate = QueueWorker(queue, store, registry=registry).drain()
        assert aggregate.error_count == 1
        assert queue.count() == 0

    def test_callback_registered_after_enqueue_is_resolved(self, queue, store, registry):
        queue.enqueue(WorkItem("node", 12, "late"))
        registry.register("late", lambda record_type, record: True)
        assert QueueWorker(queue, store, registry=registry).drain().success_count == 1

    def test_raising_callback_leaves_item_for_redelivery(self, queue, store, registry):
        def boom(record_type, record):
            raise RuntimeError("boom")

        registry.register("boom", boom)
        queue.enqueue(WorkItem("node", 12, "boom"))

        aggregate = QueueWorker(queue, store, registry=registry, lease_seconds=3600).drain()

        assert aggregate.error_count == 1
        assert queue.count() == 1
        assert queue.claim() is None  # still leased

    def test_store_failure_is_counted_and_drain_continues(self, queue, registry):
        broken = MagicMock(spec=SqliteRecordStore)
        broken.load_records.side_effect = sqlite3.OperationalError("disk I/O error")
        QueueSink(queue).enqueue_all([12, 56], "node", "noop")

        aggregate = QueueWorker(queue, broken, registry=registry, lease_seconds=3600).drain()

        assert aggregate.error_count == 2
        assert broken.load_records.call_count == 2
        assert queue.count() == 2
        assert queue.claim() is None

    def test_empty_queue(self, queue, store, registry):
        assert QueueWorker(queue, store, registry=registry).drain().attempted == 0

    def test_worker_id(self, queue, store):
        assert QueueWorker(queue, store, worker_id="w-1").worker_id == "w-1"
        assert QueueWorker(queue, store).worker_id.startswith("worker-")
