"""
Execution layer: selection, callbacks, inline batching and queue mode.

::

    Selector ──▶ ConfirmationGate ──▶ Batcher ──▶ Operation (per record)
             └──────────────────────▶ QueueSink ──▶ SqliteWorkQueue ──▶ QueueWorker
"""

from bulkrun.execution.batcher import Batcher, chunk_ids, progress_percentage
from bulkrun.execution.callbacks import register_builtin_callbacks
from bulkrun.execution.confirm import ConfirmationGate, SelectionSummary, summarize_ids
from bulkrun.execution.operation import Operation, resolve_callback
from bulkrun.execution.queue import SqliteWorkQueue
from bulkrun.execution.registry import (
    CallbackRegistry,
    get_default_registry,
    register_callback,
    reset_default_registry,
)
from bulkrun.execution.selector import Selector
from bulkrun.execution.sink import QueueSink
from bulkrun.execution.worker import QueueWorker

__all__ = [
    "Batcher",
    "CallbackRegistry",
    "ConfirmationGate",
    "Operation",
    "QueueSink",
    "QueueWorker",
    "SelectionSummary",
    "Selector",
    "SqliteWorkQueue",
    "chunk_ids",
    "get_default_registry",
    "progress_percentage",
    "register_builtin_callbacks",
    "register_callback",
    "reset_default_registry",
    "resolve_callback",
    "summarize_ids",
]
