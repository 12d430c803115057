"""
Typed request objects for operations.

Each dataclass is the *input* contract of one operation function. The
``parse_*`` helpers turn the comma/pipe-delimited option strings used on
the command line into those typed values.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from bulkrun.core.errors import InvalidFieldConditionError
from bulkrun.core.models import FieldCondition, RecordID, SelectionCriteria, coerce_record_id

# ------------------------------------------------------------------ #
# Bulk runs
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class BulkRunRequest:
    """Request for :func:`bulkrun.ops.bulk.run_bulk`.

    Attributes:
        record_type: Record type to process (``"node"``).
        callback: Registered callback name, or a callable (inline mode only).
        ids: Explicit IDs; when non-empty, ``bundles`` and ``fields`` are ignored.
        bundles: Bundle filter for the query branch.
        fields: Field filters for the query branch, ANDed in order.
        chunk_size: Records per chunk (``None`` → ``RunConfig.chunk_size``).
        queue: Enqueue work items instead of running inline.
        query_engine: Registered query engine name (``None`` → config default).
        assume_yes: Skip the confirmation prompt.
    """

    record_type: str
    callback: str | Callable[..., Any]
    ids: tuple[RecordID, ...] = ()
    bundles: tuple[str, ...] = ()
    fields: tuple[FieldCondition, ...] = ()
    chunk_size: int | None = None
    queue: bool = False
    query_engine: str | None = None
    assume_yes: bool = False

    @property
    def criteria(self) -> SelectionCriteria:
        return SelectionCriteria(ids=self.ids, bundles=self.bundles, fields=self.fields)


# ------------------------------------------------------------------ #
# Queue operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class DrainQueueRequest:
    """Request for :func:`bulkrun.ops.bulk.drain_queue`."""

    limit: int | None = None
    queue_name: str | None = None  # ``None`` → RunConfig.queue_name


# ------------------------------------------------------------------ #
# Option parsing
# ------------------------------------------------------------------ #


def parse_name_list(value: str | None) -> tuple[str, ...]:
    """``"article, page"`` → ``("article", "page")``; blanks dropped."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def parse_id_list(value: str | None) -> tuple[RecordID, ...]:
    """``"12,56"`` → ``(12, 56)``; numeric IDs become ints."""
    return tuple(coerce_record_id(part) for part in parse_name_list(value))


def _coerce_value(text: str) -> Any:
    text = text.strip()
    digits = text[1:] if text.startswith("-") else text
    # "007" is a code, not a number
    if len(digits) > 1 and digits[0] == "0" and digits[1] != ".":
        return text
    if digits.isdigit():
        return int(text)
    if digits.replace(".", "", 1).isdigit():
        return float(text)
    return text


def parse_field_conditions(value: str | None) -> tuple[FieldCondition, ...]:
    """Parse ``field|operator|value[|query-operator]`` tuples separated by commas.

    The optional fourth part is the operator handed to the query engine and
    replaces the second one when present. A dotted field name addresses a
    key inside a structured value (``meta.lang`` reads ``lang`` of ``meta``).
    ``IN`` / ``NOT IN`` take ``;``-separated values::

        "status|=|1,title|CONTAINS|news,tags|IN|a;b,meta.lang|=|en,status|=|0|<>"

    Raises:
        InvalidFieldConditionError: a tuple has fewer than 3 or more than 4 parts.
    """
    conditions: list[FieldCondition] = []
    for raw in parse_name_list(value):
        parts = [p.strip() for p in raw.split("|")]
        if len(parts) not in (3, 4) or not parts[0] or not parts[1]:
            raise InvalidFieldConditionError(
                f"Invalid field condition '{raw}': expected field|operator|value[|query-operator]"
            )
        field_name, operator, raw_value = parts[:3]
        if len(parts) == 4 and parts[3]:
            operator = parts[3]
        field_name, _, column = field_name.partition(".")
        if operator.upper() in ("IN", "NOT IN"):
            typed: Any = tuple(_coerce_value(v) for v in raw_value.split(";") if v.strip())
        else:
            typed = _coerce_value(raw_value)
        conditions.append(
            FieldCondition(
                field=field_name,
                operator=operator.upper(),
                value=typed,
                column=column or None,
            )
        )
    return tuple(conditions)
