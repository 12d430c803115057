"""
Bulk run operations.

``run_bulk`` drives the whole pipeline state machine::

    IDLE → SELECTING ─┬─ SelectionError ───────────────▶ ABORTED
                      ├─ queue mode → ENQUEUING ──────▶ COMPLETED
                      └─ CONFIRMING ─┬─ declined ─────▶ ABORTED
                                     └─ EXECUTING ────▶ COMPLETED

Setup and infrastructure errors come back as ``OperationResult.fail`` with
the error's code; per-record failures only show up in the aggregate.
"""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass
from typing import Any

from bulkrun.core.errors import InvalidCallbackError, QueueUnavailableError, SelectionError
from bulkrun.core.logging import LogContext, get_logger
from bulkrun.core.models import RunAggregate, RunMode, RunState, RunSummary
from bulkrun.core.settings import RunConfig
from bulkrun.execution.batcher import Batcher, ProgressCallback
from bulkrun.execution.confirm import ConfirmationGate
from bulkrun.execution.operation import callback_name
from bulkrun.execution.queue import SqliteWorkQueue
from bulkrun.execution.selector import Selector
from bulkrun.execution.sink import QueueSink
from bulkrun.execution.worker import QueueWorker
from bulkrun.ops.context import OperationContext
from bulkrun.ops.requests import BulkRunRequest, DrainQueueRequest
from bulkrun.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def _run_config(ctx: OperationContext, request: BulkRunRequest) -> RunConfig:
    overrides: dict[str, Any] = {}
    if request.chunk_size is not None:
        overrides["chunk_size"] = request.chunk_size
    if request.query_engine:
        overrides["query_engine"] = request.query_engine
    return dataclasses.replace(ctx.config, **overrides)


def run_bulk(
    ctx: OperationContext,
    request: BulkRunRequest,
    *,
    gate: ConfirmationGate | None = None,
    on_progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> OperationResult[RunSummary]:
    """Select records and apply a callback inline, or enqueue them.

    Args:
        ctx: Operation context (store, registries, config).
        request: What to select and which callback to apply.
        gate: Confirmation gate for inline mode. Defaults to a prompting
            gate honouring ``request.assume_yes``.
        on_progress: Called after each chunk in inline mode.
        cancel_event: Set it to stop an inline run before its next chunk.
    """
    timer = start_timer()
    mode = RunMode.QUEUE if request.queue else RunMode.INLINE

    try:
        config = _run_config(ctx, request)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    if request.queue and not isinstance(request.callback, str):
        error = InvalidCallbackError(
            callback_name(request.callback),
            "Queue mode needs a registered callback name, not a callable",
        )
        return OperationResult.from_error(error, elapsed_ms=timer.elapsed_ms)

    summary = RunSummary(
        run_id=ctx.request_id,
        record_type=request.record_type,
        callback=callback_name(request.callback),
        mode=mode,
        chunk_size=config.chunk_size,
    )

    with LogContext(run_id=summary.run_id, record_type=summary.record_type, callback=summary.callback):
        summary.transition_to(RunState.SELECTING)
        try:
            selector = Selector(ctx.store, ctx.conn, config, engines=ctx.engines)
            ids = selector.resolve(request.record_type, request.criteria)
        except SelectionError as exc:
            summary.transition_to(RunState.ABORTED)
            logger.error("run.selection_failed", **exc.to_dict())
            return OperationResult.from_error(exc, data=summary, elapsed_ms=timer.elapsed_ms)
        summary.selected = len(ids)

        if mode is RunMode.QUEUE:
            summary.transition_to(RunState.ENQUEUING)
            sink = QueueSink(SqliteWorkQueue(ctx.conn, config.queue_name))
            try:
                summary.enqueued = sink.enqueue_all(ids, request.record_type, request.callback)
            except QueueUnavailableError as exc:
                summary.transition_to(RunState.ABORTED)
                logger.error("run.enqueue_failed", **exc.to_dict())
                return OperationResult.from_error(exc, data=summary, elapsed_ms=timer.elapsed_ms)
            summary.transition_to(RunState.COMPLETED)
            return OperationResult.ok(summary, elapsed_ms=timer.elapsed_ms)

        summary.transition_to(RunState.CONFIRMING)
        gate = gate or ConfirmationGate(
            display_limit=config.display_limit,
            assume_yes=request.assume_yes,
        )
        gate.summarize(request.record_type, ids)
        if not gate.confirm():
            summary.transition_to(RunState.ABORTED)
            logger.info("run.declined", selected=summary.selected)
            return OperationResult.fail(
                "DECLINED",
                "Aborted by operator",
                data=summary,
                elapsed_ms=timer.elapsed_ms,
            )

        summary.transition_to(RunState.EXECUTING)
        batcher = Batcher(
            ctx.store,
            config,
            registry=ctx.callbacks,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )
        summary.aggregate = batcher.run(ids, request.record_type, request.callback)
        summary.transition_to(RunState.COMPLETED)

    warnings = []
    if summary.aggregate.cancelled:
        warnings.append("Run cancelled before all chunks were processed")
    if summary.aggregate.missing_count:
        warnings.append(f"{summary.aggregate.missing_count} record(s) no longer exist")
    return OperationResult.ok(summary, warnings=warnings, elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Queue consumer
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class QueueStatus:
    """Pending item count of one queue."""

    queue: str
    items: int

    def to_dict(self) -> dict[str, Any]:
        return {"queue": self.queue, "items": self.items}


def drain_queue(
    ctx: OperationContext,
    request: DrainQueueRequest | None = None,
) -> OperationResult[RunAggregate]:
    """Consume work items from the durable queue."""
    request = request or DrainQueueRequest()
    timer = start_timer()
    queue = SqliteWorkQueue(ctx.conn, request.queue_name or ctx.config.queue_name)
    worker = QueueWorker(
        queue,
        ctx.store,
        registry=ctx.callbacks,
        lease_seconds=ctx.config.lease_seconds,
    )
    try:
        queue.ensure_exists()
        aggregate = worker.drain(limit=request.limit)
    except QueueUnavailableError as exc:
        logger.error("run.drain_failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(aggregate, elapsed_ms=timer.elapsed_ms)


def queue_status(
    ctx: OperationContext,
    queue_name: str | None = None,
) -> OperationResult[QueueStatus]:
    """Count the items left in a queue."""
    timer = start_timer()
    queue = SqliteWorkQueue(ctx.conn, queue_name or ctx.config.queue_name)
    try:
        queue.ensure_exists()
        status = QueueStatus(queue=queue.name, items=queue.count())
    except QueueUnavailableError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(status, elapsed_ms=timer.elapsed_ms)


def list_callbacks(ctx: OperationContext) -> OperationResult[list[dict[str, Any]]]:
    """List callbacks the context can resolve."""
    timer = start_timer()
    return OperationResult.ok(ctx.callbacks.list_with_metadata(), elapsed_ms=timer.elapsed_ms)
