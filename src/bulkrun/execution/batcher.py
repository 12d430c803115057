"""Batcher: chunked inline execution with progress feedback.

WHY
───
Applying a callback to tens of thousands of records in one go gives the
operator no feedback and holds every record in memory. The Batcher cuts
the selection into fixed-size chunks, loads one chunk at a time, applies
the callback record by record and reports cumulative progress after each
chunk.

ARCHITECTURE
────────────
::

    Batcher(store, config, registry, on_progress)
      ├── .run(ids, type, callback, chunk_size) → RunAggregate
      └── .cancel()              ─ stop before the next chunk

    chunk_ids(ids, size)              ─ exact partition, order preserved
    progress_percentage(done, total)  ─ round-half-up integer percentage

    per chunk:
      load_records ─┬─ missing IDs  → warning, missing_count
                    └─ each record → Operation.prepare ─┬─ InvalidCallbackError → error_count
                                                        └─ execute() ─ True/False → success/error
      → on_progress(Progress)

Execution is strictly sequential: one chunk at a time, one record at a
time, so the aggregate needs no locking. Nothing is retried. A failure,
including an exception raised by the callback, is terminal for that record
and never aborts the run.

Example::

    batcher = Batcher(store, RunConfig(chunk_size=25), registry=registry)
    aggregate = batcher.run([12, 56], "node", "save")
    print(aggregate.success_count, aggregate.error_count)
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence

from bulkrun.core.errors import InvalidCallbackError
from bulkrun.core.logging import get_logger
from bulkrun.core.models import Progress, Record, RecordID, RecordOutcome, RunAggregate
from bulkrun.core.protocols import RecordStore
from bulkrun.core.settings import RunConfig
from bulkrun.execution.operation import CallbackRef, Operation, callback_name
from bulkrun.execution.registry import CallbackRegistry

logger = get_logger(__name__)

ProgressCallback = Callable[[Progress], None]


def chunk_ids(ids: Sequence[RecordID], size: int) -> list[list[RecordID]]:
    """Partition ``ids`` into consecutive chunks of ``size``.

    Concatenating the chunks reproduces ``ids`` exactly; only the last
    chunk may be shorter.

    >>> [len(c) for c in chunk_ids(list(range(57)), 25)]
    [25, 25, 7]
    """
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(ids[start : start + size]) for start in range(0, len(ids), size)]


def progress_percentage(processed: int, total: int) -> int:
    """``round(100 * processed / total)`` with halves rounded up.

    Integer arithmetic avoids both float error and Python's banker's
    rounding.

    >>> progress_percentage(1, 8)
    13
    """
    if total <= 0:
        return 100
    return (200 * processed + total) // (2 * total)


class Batcher:
    """Drives :class:`Operation` over a selection, chunk by chunk."""

    def __init__(
        self,
        store: RecordStore,
        config: RunConfig | None = None,
        *,
        registry: CallbackRegistry | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._store = store
        self._config = config or RunConfig()
        self._registry = registry
        self._on_progress = on_progress
        self._cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Request a stop. Takes effect before the next chunk starts."""
        self._cancel_event.set()

    def run(
        self,
        ids: Sequence[RecordID],
        record_type: str,
        callback_ref: CallbackRef,
        chunk_size: int | None = None,
    ) -> RunAggregate:
        size = chunk_size if chunk_size is not None else self._config.chunk_size
        chunks = chunk_ids(ids, size)
        total = len(ids)
        aggregate = RunAggregate()
        processed = 0
        name = callback_name(callback_ref)

        logger.info(
            "batcher.start",
            record_type=record_type,
            callback=name,
            total=total,
            chunk_size=size,
            chunks=len(chunks),
        )

        for index, chunk in enumerate(chunks, start=1):
            if self._cancel_event.is_set():
                aggregate.cancelled = True
                logger.warning("batcher.cancelled", processed=processed, total=total)
                break

            self._run_chunk(chunk, record_type, callback_ref, aggregate)
            processed += len(chunk)

            progress = Progress(
                chunk_index=index,
                chunk_count=len(chunks),
                processed=processed,
                total=total,
                percentage=progress_percentage(processed, total),
            )
            logger.info(
                "batcher.chunk_completed",
                chunk=index,
                chunks=len(chunks),
                processed=processed,
                total=total,
                percentage=progress.percentage,
            )
            if self._on_progress is not None:
                self._on_progress(progress)

        logger.info("batcher.complete", **aggregate.to_dict())
        return aggregate

    # ── Internals ────────────────────────────────────────────────────

    def _run_chunk(
        self,
        chunk: list[RecordID],
        record_type: str,
        callback_ref: CallbackRef,
        aggregate: RunAggregate,
    ) -> None:
        try:
            records = self._store.load_records(record_type, chunk)
        except Exception as exc:
            logger.exception(
                "batcher.chunk_load_failed",
                record_type=record_type,
                first_id=chunk[0],
                size=len(chunk),
                error=str(exc),
            )
            return

        for record_id in chunk:
            if record_id not in records:
                aggregate.missing_count += 1
                logger.warning("batcher.record_missing", record_type=record_type, record_id=record_id)

        for record_id, record in records.items():
            outcome = self._apply(record_type, record_id, record, callback_ref)
            aggregate.record(outcome)

    def _apply(
        self,
        record_type: str,
        record_id: RecordID,
        record: Record,
        callback_ref: CallbackRef,
    ) -> RecordOutcome:
        try:
            operation = Operation.prepare(record_type, record, callback_ref, registry=self._registry)
        except InvalidCallbackError as exc:
            logger.error(
                "batcher.invalid_callback",
                record_type=record_type,
                record_id=record_id,
                error=exc.message,
            )
            return RecordOutcome(record_type, record_id, success=False, reason=exc.message)

        try:
            ok = operation.execute()
        except Exception as exc:
            logger.exception(
                "batcher.callback_raised",
                record_type=record_type,
                record_id=record_id,
                callback=operation.callback_name,
                error=str(exc),
            )
            return RecordOutcome(record_type, record_id, success=False, reason=str(exc))

        if not ok:
            logger.warning(
                "batcher.callback_failed",
                record_type=record_type,
                record_id=record_id,
                callback=operation.callback_name,
            )
            return RecordOutcome(record_type, record_id, success=False, reason="callback reported failure")
        return RecordOutcome(record_type, record_id, success=True)
