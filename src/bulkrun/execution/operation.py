"""Operation: one callback applied to one record.

Preparation and execution are separate steps. ``prepare`` resolves the
callback reference and checks the target; it is the only place a checked
failure (:class:`InvalidCallbackError`) can come from. ``execute`` simply
invokes the callback and hands back its boolean verdict.

A callback reference is either:

- a registered name, resolved through a :class:`CallbackRegistry`, or
- a callable passed directly at the API boundary.

Example::

    op = Operation.prepare("node", record, "save", registry=registry)
    ok = op.execute()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from bulkrun.core.errors import InvalidCallbackError
from bulkrun.core.models import Record
from bulkrun.execution.registry import CallbackRegistry, get_default_registry

CallbackRef = str | Callable[..., Any]


def callback_name(callback_ref: CallbackRef) -> str:
    """Human-readable name of a callback reference (for logs and summaries)."""
    if isinstance(callback_ref, str):
        return callback_ref
    return getattr(callback_ref, "__qualname__", None) or repr(callback_ref)


def resolve_callback(
    callback_ref: CallbackRef,
    registry: CallbackRegistry | None = None,
) -> Callable[..., Any]:
    """Resolve a callback reference to a callable.

    Raises:
        InvalidCallbackError: unknown name, or a value that is not callable.
    """
    if isinstance(callback_ref, str):
        callback = (registry or get_default_registry()).get(callback_ref)
        if callback is None:
            raise InvalidCallbackError(callback_ref, f"No callback registered as '{callback_ref}'")
    else:
        callback = callback_ref

    if not callable(callback):
        raise InvalidCallbackError(callback_name(callback_ref))
    return callback


@dataclass(frozen=True, slots=True)
class Operation:
    """A validated (callback, record) pairing ready to execute."""

    record_type: str
    record: Record
    callback: Callable[..., Any]
    callback_name: str

    @classmethod
    def prepare(
        cls,
        record_type: str,
        record: Record,
        callback_ref: CallbackRef,
        *,
        registry: CallbackRegistry | None = None,
    ) -> Operation:
        """Validate ``callback_ref`` and ``record``.

        Raises:
            InvalidCallbackError: If the callback cannot be resolved, or the
                record is missing or belongs to another record type.
        """
        name = callback_name(callback_ref)
        callback = resolve_callback(callback_ref, registry)
        if record is None:
            raise InvalidCallbackError(name, f"Callback '{name}' has no record to operate on")
        if record.record_type != record_type:
            raise InvalidCallbackError(
                name,
                f"Record {record.id} is a '{record.record_type}', not a '{record_type}'",
            ).with_context(record_type=record_type, record_id=record.id)
        return cls(record_type=record_type, record=record, callback=callback, callback_name=name)

    def execute(self) -> bool:
        """Invoke the callback with ``(record_type, record)``.

        Returns the callback's own success signal. Exceptions raised by the
        callback are not caught here.
        """
        return bool(self.callback(self.record_type, self.record))
