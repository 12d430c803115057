"""Core primitives: errors, models, protocols, settings and logging."""

from bulkrun.core.errors import (
    BulkRunError,
    EmptySelectionError,
    ErrorCategory,
    ErrorContext,
    InvalidBundleError,
    InvalidCallbackError,
    InvalidFieldConditionError,
    InvalidQueryEngineError,
    InvalidTypeError,
    QueueUnavailableError,
    SelectionError,
)
from bulkrun.core.models import (
    FieldCondition,
    Progress,
    Record,
    RecordID,
    RecordOutcome,
    RecordStub,
    RunAggregate,
    RunMode,
    RunState,
    RunSummary,
    SelectionCriteria,
    WorkItem,
    coerce_record_id,
)
from bulkrun.core.settings import BulkRunSettings, RunConfig

__all__ = [
    # errors
    "BulkRunError",
    "EmptySelectionError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidBundleError",
    "InvalidCallbackError",
    "InvalidFieldConditionError",
    "InvalidQueryEngineError",
    "InvalidTypeError",
    "QueueUnavailableError",
    "SelectionError",
    # models
    "FieldCondition",
    "Progress",
    "Record",
    "RecordID",
    "RecordOutcome",
    "RecordStub",
    "RunAggregate",
    "RunMode",
    "RunState",
    "RunSummary",
    "SelectionCriteria",
    "WorkItem",
    "coerce_record_id",
    # settings
    "BulkRunSettings",
    "RunConfig",
]
