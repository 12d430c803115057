"""
Operations layer: the entry points for CLI and SDK callers.

- All functions accept ``OperationContext`` as first argument
- All functions return ``OperationResult[T]``; setup errors become
  ``OperationResult.fail`` with the error's code
- No terminal knowledge: prompts and progress rendering are injected

Usage::

    from bulkrun.ops import BulkRunRequest, make_context, run_bulk

    ctx = make_context("records.db")
    result = run_bulk(ctx, BulkRunRequest("node", "save", ids=(12, 56), assume_yes=True))
    assert result.success
"""

from bulkrun.ops.bulk import QueueStatus, drain_queue, list_callbacks, queue_status, run_bulk
from bulkrun.ops.context import OperationContext, make_context
from bulkrun.ops.requests import (
    BulkRunRequest,
    DrainQueueRequest,
    parse_field_conditions,
    parse_id_list,
    parse_name_list,
)
from bulkrun.ops.result import OperationError, OperationResult

__all__ = [
    "BulkRunRequest",
    "DrainQueueRequest",
    "OperationContext",
    "OperationError",
    "OperationResult",
    "QueueStatus",
    "drain_queue",
    "list_callbacks",
    "make_context",
    "parse_field_conditions",
    "parse_id_list",
    "parse_name_list",
    "queue_status",
    "run_bulk",
]
