"""QueueSink: producer side of queue mode.

Turns a selection into one :class:`WorkItem` per ID and hands them to a
durable queue. It never runs callbacks itself.

Failure policy: a queue error is fatal to ``enqueue_all`` and propagates
as :class:`QueueUnavailableError`. Items enqueued before the failure stay
enqueued; re-running ``enqueue_all`` with the same IDs is the recovery
path, so consumers will see duplicates and callbacks must be idempotent.
"""

from __future__ import annotations

from collections.abc import Sequence

from bulkrun.core.errors import QueueUnavailableError
from bulkrun.core.logging import get_logger
from bulkrun.core.models import RecordID, WorkItem
from bulkrun.core.protocols import WorkQueue
from bulkrun.execution.operation import CallbackRef, callback_name

logger = get_logger(__name__)


class QueueSink:
    """Enqueue one work item per selected record."""

    def __init__(self, queue: WorkQueue):
        self._queue = queue

    @property
    def queue(self) -> WorkQueue:
        return self._queue

    def enqueue_all(
        self,
        ids: Sequence[RecordID],
        record_type: str,
        callback_ref: CallbackRef,
    ) -> int:
        """Enqueue ``ids`` in input order. Returns the number enqueued.

        The callback name is stored as-is; it is resolved by the consumer
        when the item is processed.

        Raises:
            TypeError: ``callback_ref`` is a callable; only names can be
                persisted in a work item.
            QueueUnavailableError: the queue cannot be created or written.
        """
        if not isinstance(callback_ref, str):
            raise TypeError(f"Queue mode needs a callback name, got {callback_name(callback_ref)}")

        self._queue.ensure_exists()

        count = 0
        try:
            for record_id in ids:
                self._queue.enqueue(
                    WorkItem(record_type=record_type, record_id=record_id, callback=callback_ref)
                )
                count += 1
        except QueueUnavailableError:
            logger.error(
                "sink.enqueue_interrupted",
                queue=self._queue.name,
                enqueued=count,
                total=len(ids),
            )
            raise

        logger.info("sink.enqueued", queue=self._queue.name, record_type=record_type, count=count)
        return count
