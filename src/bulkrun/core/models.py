"""Domain models.

Defines the data structures shared by the selection-to-execution pipeline:

- Record / RecordStub: a loaded record and the ID-only result of a query
- FieldCondition / SelectionCriteria: what to select
- WorkItem: one deferred (record, callback) pairing in the durable queue
- RunAggregate / Progress / RecordOutcome: what happened during a run
- RunState: the pipeline state machine
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

RecordID = int | str


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def coerce_record_id(value: RecordID) -> RecordID:
    """Normalise an operator-supplied ID.

    Text made only of digits becomes an ``int``; anything else is kept as a
    stripped string.

    >>> coerce_record_id(" 12 ")
    12
    >>> coerce_record_id("abc-1")
    'abc-1'
    """
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    return text


# ── Records ──────────────────────────────────────────────────────────────


@dataclass
class Record:
    """A record loaded from the store.

    ``fields`` is the record's free-form payload; ``changed`` is updated by
    the store every time the record is saved.
    """

    record_type: str
    id: RecordID
    bundle: str
    fields: dict[str, Any] = field(default_factory=dict)
    changed: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_type": self.record_type,
            "id": self.id,
            "bundle": self.bundle,
            "fields": self.fields,
            "changed": self.changed.isoformat() if self.changed else None,
        }


@dataclass(frozen=True, slots=True)
class RecordStub:
    """ID-only query result (type, ID and bundle, no payload)."""

    record_type: str
    id: RecordID
    bundle: str


# ── Selection ────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class FieldCondition:
    """One field filter: ``field <operator> value``.

    ``column`` addresses a key inside a structured field value
    (``body.value``); ``None`` compares the field value itself.
    """

    field: str
    operator: str
    value: Any
    column: str | None = None


@dataclass(frozen=True, slots=True)
class SelectionCriteria:
    """What to select.

    A non-empty ``ids`` list takes precedence: ``bundles`` and ``fields``
    are ignored whenever explicit IDs are given.
    """

    ids: tuple[RecordID, ...] = ()
    bundles: tuple[str, ...] = ()
    fields: tuple[FieldCondition, ...] = ()

    @property
    def is_explicit(self) -> bool:
        return len(self.ids) > 0


# ── Queue ────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class WorkItem:
    """One unit of deferred work: apply ``callback`` to a single record."""

    record_type: str
    record_id: RecordID
    callback: str

    def to_json(self) -> str:
        return json.dumps(
            {"record_type": self.record_type, "record_id": self.record_id, "callback": self.callback}
        )

    @classmethod
    def from_json(cls, payload: str) -> WorkItem:
        data = json.loads(payload)
        return cls(
            record_type=data["record_type"],
            record_id=data["record_id"],
            callback=data["callback"],
        )


@dataclass(frozen=True, slots=True)
class ClaimedItem:
    """A work item claimed from the queue, plus its queue-assigned ID."""

    item_id: int
    item: WorkItem
    created_at: datetime | None = None


# ── Run outcome ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RecordOutcome:
    """Success or failure of one record within a run."""

    record_type: str
    record_id: RecordID
    success: bool
    reason: str | None = None


@dataclass
class RunAggregate:
    """Run-wide success/error tally.

    Counters only ever go up. ``missing_count`` tracks IDs that were absent
    from the store at load time; those records were never attempted and are
    not part of ``attempted``.
    """

    success_count: int = 0
    error_count: int = 0
    missing_count: int = 0
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return self.success_count + self.error_count

    def record(self, outcome: RecordOutcome) -> None:
        if outcome.success:
            self.success_count += 1
        else:
            self.error_count += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "missing_count": self.missing_count,
            "attempted": self.attempted,
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True, slots=True)
class Progress:
    """Cumulative progress emitted after each chunk."""

    chunk_index: int  # 1-based
    chunk_count: int
    processed: int
    total: int
    percentage: int

    @property
    def done(self) -> bool:
        return self.processed >= self.total


# ── Pipeline state machine ───────────────────────────────────────────────


class RunMode(str, Enum):
    INLINE = "inline"
    QUEUE = "queue"


class RunState(str, Enum):
    """State of a bulk run.

    Valid transition graph::

        IDLE       → SELECTING
        SELECTING  → CONFIRMING | ENQUEUING | ABORTED
        CONFIRMING → EXECUTING | ABORTED
        EXECUTING  → COMPLETED
        ENQUEUING  → COMPLETED | ABORTED
        COMPLETED  → (terminal)
        ABORTED    → (terminal)
    """

    IDLE = "idle"
    SELECTING = "selecting"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    ENQUEUING = "enqueuing"
    COMPLETED = "completed"
    ABORTED = "aborted"


class InvalidTransitionError(ValueError):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, current: RunState, target: RunState) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid RunState transition: {current.value} → {target.value}")


RUN_VALID_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.SELECTING}),
    RunState.SELECTING: frozenset({RunState.CONFIRMING, RunState.ENQUEUING, RunState.ABORTED}),
    RunState.CONFIRMING: frozenset({RunState.EXECUTING, RunState.ABORTED}),
    RunState.EXECUTING: frozenset({RunState.COMPLETED}),
    RunState.ENQUEUING: frozenset({RunState.COMPLETED, RunState.ABORTED}),
    RunState.COMPLETED: frozenset(),  # terminal
    RunState.ABORTED: frozenset(),  # terminal
}


def validate_run_transition(current: RunState, target: RunState) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal."""
    if target not in RUN_VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, target)


@dataclass
class RunSummary:
    """Final report of a bulk run."""

    run_id: str
    record_type: str
    callback: str
    mode: RunMode
    state: RunState = RunState.IDLE
    selected: int = 0
    chunk_size: int = 0
    enqueued: int = 0
    aggregate: RunAggregate = field(default_factory=RunAggregate)
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    def transition_to(self, target: RunState) -> None:
        validate_run_transition(self.state, target)
        self.state = target
        if target in (RunState.COMPLETED, RunState.ABORTED):
            self.completed_at = utcnow()

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "record_type": self.record_type,
            "callback": self.callback,
            "mode": self.mode.value,
            "state": self.state.value,
            "selected": self.selected,
            "chunk_size": self.chunk_size,
            "enqueued": self.enqueued,
            **self.aggregate.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
