"""Callback Registry: injectable name → callback lookup.

Manifesto:
Operators name callbacks on the command line (``bulkrun run node save``)
and queue mode persists that name into durable work items. The registry
decouples registration (at import time or startup) from resolution (at
``Operation.prepare`` time), and supports both a global singleton and
injectable instances for testing.

ARCHITECTURE
────────────
::

    CallbackRegistry
      ├── .register(name, callback)  ─ store callback
      ├── .get(name)                 ─ lookup, ``None`` if unknown
      ├── .has(name)                 ─ existence check
      └── .list_with_metadata()      ─ name + description

    register_callback(name)      ─ decorator, global registry
    get_default_registry()       ─ module-level singleton
    reset_default_registry()     ─ clear for testing

A callback has the signature ``(record_type, record) -> bool``.

Related modules:
    operation.py : resolves references through the registry
    callbacks.py : built-in callbacks
"""

from collections.abc import Callable
from typing import Any

Callback = Callable[[str, Any], Any]


class CallbackRegistry:
    """Injectable callback registry.

    Example:
        >>> registry = CallbackRegistry()
        >>>
        >>> @register_callback("touch", registry=registry)
        ... def touch(record_type, record):
        ...     return True
        >>>
        >>> registry.get("touch") is touch
        True
    """

    def __init__(self):
        self._callbacks: dict[str, Callback] = {}
        self._metadata: dict[str, dict[str, Any]] = {}

    def register(
        self,
        name: str,
        callback: Callback,
        description: str | None = None,
    ) -> None:
        """Register a callback under ``name`` (replaces any previous one)."""
        self._callbacks[name] = callback
        self._metadata[name] = {"name": name, "description": description}

    def get(self, name: str) -> Callback | None:
        return self._callbacks.get(name)

    def has(self, name: str) -> bool:
        return name in self._callbacks

    def names(self) -> list[str]:
        return sorted(self._callbacks)

    def list_with_metadata(self) -> list[dict[str, Any]]:
        """List callbacks with their descriptions, sorted by name."""
        return [self._metadata[name].copy() for name in self.names()]

    def unregister(self, name: str) -> bool:
        if name in self._callbacks:
            del self._callbacks[name]
            del self._metadata[name]
            return True
        return False

    def clear(self) -> None:
        """Clear all callbacks (for testing)."""
        self._callbacks.clear()
        self._metadata.clear()

    def copy(self) -> "CallbackRegistry":
        clone = CallbackRegistry()
        clone._callbacks = dict(self._callbacks)
        clone._metadata = {k: v.copy() for k, v in self._metadata.items()}
        return clone


# === GLOBAL DEFAULT REGISTRY ===

_default_registry: CallbackRegistry | None = None


def get_default_registry() -> CallbackRegistry:
    """Get the global default registry.

    Creates it lazily on first access.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = CallbackRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Drop the global registry (for testing)."""
    global _default_registry
    _default_registry = None


def register_callback(
    name: str,
    description: str | None = None,
    registry: CallbackRegistry | None = None,
) -> Callable[[Callback], Callback]:
    """Decorator registering a callback under ``name``."""

    def decorator(func: Callback) -> Callback:
        (registry or get_default_registry()).register(name, func, description=description)
        return func

    return decorator
