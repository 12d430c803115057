"""
Structured error types for bulkrun.

Every failure the pipeline can report is a typed error carrying a category,
a retry flag, structured context (record type, record ID, callback, queue)
and an optional chained cause. The ops layer turns these into
``OperationResult`` failures with stable error codes, so callers never have
to parse exception messages.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        BulkRunError                              │
        │  (category, retryable, context, cause, code)                     │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  SelectionError (setup)           CallbackError (per record)     │
        │       │                                │                         │
        │  InvalidTypeError                 InvalidCallbackError           │
        │  InvalidBundleError                                              │
        │  InvalidQueryEngineError          QueueError (infrastructure)    │
        │  InvalidFieldConditionError            │                         │
        │  EmptySelectionError              QueueUnavailableError          │
        └─────────────────────────────────────────────────────────────────┘

Taxonomy:
    - **Setup errors** halt the run before confirmation, no side effects.
    - **Per-record errors** are counted and logged, never propagated.
    - **Infrastructure errors** propagate to the top level, no retry.

Examples:
    >>> error = InvalidBundleError("node", ["blog"]).with_context(callback="save")
    >>> error.code
    'INVALID_BUNDLE'
    >>> error.context.record_type, error.context.callback
    ('node', 'save')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    SELECTION = "SELECTION"  # Unknown type/bundle, empty result
    CONFIG = "CONFIG"  # Query engine, field condition syntax
    CALLBACK = "CALLBACK"  # Unresolvable callback reference
    QUEUE = "QUEUE"  # Durable queue unavailable
    STORAGE = "STORAGE"  # Record store failures
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only non-``None`` fields are serialised by :meth:`to_dict`, so callers
    set whatever is relevant and leave the rest.
    """

    record_type: str | None = None
    record_id: int | str | None = None
    callback: str | None = None
    queue: str | None = None
    query_engine: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["record_type", "record_id", "callback", "queue", "query_engine"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class BulkRunError(Exception):
    """Base exception for all bulkrun errors.

    Subclasses set ``default_category``, ``default_retryable`` and ``code``.
    ``code`` is the machine-readable identifier surfaced through
    ``OperationResult.error.code`` and the CLI.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BulkRunError:
        """Add context to this error (fluent API).

        Usage:
            raise QueueUnavailableError("bulkrun_callbacks").with_context(item_id=7)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SETUP ERRORS
# =============================================================================


class SelectionError(BulkRunError):
    """
    Error raised while resolving the working ID set.

    Never retryable - the operator must fix the type, bundles, filters or
    query engine before re-running.
    """

    default_category = ErrorCategory.SELECTION
    code = "SELECTION_FAILED"


class InvalidTypeError(SelectionError):
    """The record type is not known to the record store."""

    code = "INVALID_TYPE"

    def __init__(self, record_type: str, message: str | None = None):
        super().__init__(
            message or f"'{record_type}' is not a valid record type",
            context=ErrorContext(record_type=record_type),
        )


class InvalidBundleError(SelectionError):
    """One or more bundle names do not exist for the record type."""

    code = "INVALID_BUNDLE"

    def __init__(self, record_type: str, bundles: list[str], message: str | None = None):
        self.bundles = list(bundles)
        super().__init__(
            message or f"Invalid bundle(s) for '{record_type}': {', '.join(self.bundles)}",
            context=ErrorContext(record_type=record_type, metadata={"bundles": self.bundles}),
        )


class InvalidQueryEngineError(SelectionError):
    """The selected query engine is unregistered or lacks the query capability set."""

    default_category = ErrorCategory.CONFIG
    code = "INVALID_QUERY_ENGINE"

    def __init__(self, name: str, message: str | None = None):
        super().__init__(
            message or f"'{name}' is not a usable query engine",
            context=ErrorContext(query_engine=name),
        )


class InvalidFieldConditionError(SelectionError):
    """A field condition could not be parsed or uses an unsupported operator."""

    default_category = ErrorCategory.CONFIG
    code = "INVALID_FIELD_CONDITION"


class EmptySelectionError(SelectionError):
    """The selection resolved to zero records."""

    code = "EMPTY_SELECTION"

    def __init__(self, record_type: str, message: str | None = None):
        super().__init__(
            message or f"No '{record_type}' records match the selection",
            context=ErrorContext(record_type=record_type),
        )


# =============================================================================
# PER-RECORD ERRORS
# =============================================================================


class CallbackError(BulkRunError):
    """Error tied to a callback reference."""

    default_category = ErrorCategory.CALLBACK
    code = "CALLBACK_FAILED"


class InvalidCallbackError(CallbackError):
    """The callback reference cannot be resolved to something invocable."""

    code = "INVALID_CALLBACK"

    def __init__(self, callback: str, message: str | None = None):
        super().__init__(
            message or f"Callback '{callback}' cannot be resolved to a callable",
            context=ErrorContext(callback=callback),
        )


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class QueueError(BulkRunError):
    """Durable queue error."""

    default_category = ErrorCategory.QUEUE
    code = "QUEUE_ERROR"


class QueueUnavailableError(QueueError):
    """The durable queue cannot be created or written to."""

    code = "QUEUE_UNAVAILABLE"

    def __init__(self, queue: str, message: str | None = None, *, cause: Exception | None = None):
        super().__init__(
            message or f"Queue '{queue}' is unavailable",
            context=ErrorContext(queue=queue),
            cause=cause,
        )


class StorageError(BulkRunError):
    """Record store error."""

    default_category = ErrorCategory.STORAGE
    code = "STORAGE_ERROR"


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, BulkRunError):
        return error.category
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BulkRunError",
    # Setup
    "SelectionError",
    "InvalidTypeError",
    "InvalidBundleError",
    "InvalidQueryEngineError",
    "InvalidFieldConditionError",
    "EmptySelectionError",
    # Per record
    "CallbackError",
    "InvalidCallbackError",
    # Infrastructure
    "QueueError",
    "QueueUnavailableError",
    "StorageError",
    "categorize_error",
]
