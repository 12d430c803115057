"""Built-in callbacks: reference implementations for common bulk jobs.

::

    noop       ─ touch nothing, always succeed (dry runs, smoke tests)
    fail       ─ always report failure (aggregate / DLQ testing)
    save       ─ re-save the record, bumping its ``changed`` timestamp
    publish    ─ set ``status = 1`` and save
    unpublish  ─ set ``status = 0`` and save

``save``, ``publish`` and ``unpublish`` need a record store, so they are
built per store by :func:`register_builtin_callbacks` instead of being
registered at import time.

Usage::

    registry = get_default_registry().copy()
    register_builtin_callbacks(registry, store)
"""

from __future__ import annotations

from typing import Any

from bulkrun.core.logging import get_logger
from bulkrun.core.models import Record
from bulkrun.core.protocols import RecordStore
from bulkrun.execution.registry import Callback, CallbackRegistry

logger = get_logger(__name__)


def noop_callback(record_type: str, record: Record) -> bool:
    """Leave the record untouched."""
    return True


def fail_callback(record_type: str, record: Record) -> bool:
    """Report failure without raising."""
    return False


def make_save_callback(store: RecordStore) -> Callback:
    def save(record_type: str, record: Record) -> bool:
        store.save_record(record)
        return True

    return save


def make_status_callback(store: RecordStore, status: int) -> Callback:
    """Build a callback that sets the ``status`` field and saves."""

    def set_status(record_type: str, record: Record) -> bool:
        if record.fields.get("status") == status:
            logger.debug("status_unchanged", record_type=record_type, record_id=record.id, status=status)
            return True
        record.fields["status"] = status
        store.save_record(record)
        return True

    return set_status


def register_builtin_callbacks(
    registry: CallbackRegistry,
    store: RecordStore | None = None,
) -> CallbackRegistry:
    """Register the built-ins into ``registry``.

    Callbacks already registered under a built-in name are left alone, so
    a project can override ``save`` with its own implementation.
    """
    builtins: dict[str, tuple[Any, str]] = {
        "noop": (noop_callback, "Leave the record untouched."),
        "fail": (fail_callback, "Always report failure (testing)."),
    }
    if store is not None:
        builtins["save"] = (make_save_callback(store), "Re-save the record.")
        builtins["publish"] = (make_status_callback(store, 1), "Set status = 1 and save.")
        builtins["unpublish"] = (make_status_callback(store, 0), "Set status = 0 and save.")

    for name, (callback, description) in builtins.items():
        if not registry.has(name):
            registry.register(name, callback, description=description)
    return registry
