"""Queue worker: consumes work items produced by :class:`QueueSink`.

For each claimed item the worker loads the record, prepares an
:class:`Operation` and executes it, then deletes the item. The worker owns
the :class:`RunAggregate` for queue mode.

Delivery semantics::

    claim ──▶ load raised         ──▶ keep leased, error_count
          ──▶ record missing      ──▶ delete, missing_count
          ──▶ InvalidCallbackError ──▶ delete, error_count
          ──▶ execute() True/False ──▶ delete, success/error_count
          ──▶ callback raised      ──▶ keep leased, error_count
                                       (redelivered after the lease)

Items are processed at-least-once; duplicates are run again, so callbacks
must be idempotent. Callback names are resolved at consume time, against
whatever the registry holds then.

Usage::

    worker = QueueWorker(queue, store, registry=registry)
    aggregate = worker.drain(limit=500)
"""

from __future__ import annotations

import uuid

from bulkrun.core.errors import InvalidCallbackError
from bulkrun.core.logging import LogContext, get_logger
from bulkrun.core.models import ClaimedItem, RunAggregate
from bulkrun.core.protocols import RecordStore, WorkQueue
from bulkrun.execution.operation import Operation
from bulkrun.execution.registry import CallbackRegistry

logger = get_logger(__name__)


class QueueWorker:
    """Drains a work queue one item at a time."""

    def __init__(
        self,
        queue: WorkQueue,
        store: RecordStore,
        *,
        registry: CallbackRegistry | None = None,
        lease_seconds: int = 300,
        worker_id: str | None = None,
    ):
        self._queue = queue
        self._store = store
        self._registry = registry
        self._lease_seconds = lease_seconds
        self.worker_id = worker_id or f"worker-{uuid.uuid4().hex[:8]}"

    def drain(self, limit: int | None = None) -> RunAggregate:
        """Process claimable items until the queue is empty or ``limit`` is hit."""
        aggregate = RunAggregate()
        handled = 0

        with LogContext(worker_id=self.worker_id, queue=self._queue.name):
            logger.info("worker.start", limit=limit)
            while limit is None or handled < limit:
                claimed = self._queue.claim(self._lease_seconds)
                if claimed is None:
                    break
                self._process(claimed, aggregate)
                handled += 1
            logger.info("worker.drained", handled=handled, **aggregate.to_dict())

        return aggregate

    def _process(self, claimed: ClaimedItem, aggregate: RunAggregate) -> None:
        item = claimed.item
        try:
            records = self._store.load_records(item.record_type, [item.record_id])
        except Exception as exc:
            aggregate.error_count += 1
            logger.exception(
                "worker.load_failed",
                record_type=item.record_type,
                record_id=item.record_id,
                item_id=claimed.item_id,
                error=str(exc),
            )
            return
        record = records.get(item.record_id)
        if record is None:
            aggregate.missing_count += 1
            logger.warning("worker.record_missing", record_type=item.record_type, record_id=item.record_id)
            self._queue.delete(claimed.item_id)
            return

        try:
            operation = Operation.prepare(item.record_type, record, item.callback, registry=self._registry)
        except InvalidCallbackError as exc:
            aggregate.error_count += 1
            logger.error(
                "worker.invalid_callback",
                record_type=item.record_type,
                record_id=item.record_id,
                error=exc.message,
            )
            self._queue.delete(claimed.item_id)
            return

        try:
            ok = operation.execute()
        except Exception as exc:
            aggregate.error_count += 1
            logger.exception(
                "worker.callback_raised",
                record_type=item.record_type,
                record_id=item.record_id,
                callback=item.callback,
                item_id=claimed.item_id,
                error=str(exc),
            )
            return

        if ok:
            aggregate.success_count += 1
        else:
            aggregate.error_count += 1
            logger.warning(
                "worker.callback_failed",
                record_type=item.record_type,
                record_id=item.record_id,
                callback=item.callback,
            )
        self._queue.delete(claimed.item_id)
