"""Confirmation gate: operator go/no-go before inline execution.

The gate prints what is about to be touched and blocks on a yes/no
prompt. Long selections are cut to the first ``display_limit`` IDs plus a
count of the rest. Queue mode never reaches the gate.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import typer
from rich.console import Console

from bulkrun.core.models import RecordID
from bulkrun.core.settings import DEFAULT_DISPLAY_LIMIT

PromptFn = Callable[[str], bool]


@dataclass(frozen=True, slots=True)
class SelectionSummary:
    """What the operator is shown before confirming."""

    record_type: str
    total: int
    shown: tuple[RecordID, ...]
    remainder: int

    @property
    def text(self) -> str:
        listing = ", ".join(str(record_id) for record_id in self.shown)
        if self.remainder:
            listing += f" (+{self.remainder} more)"
        return f"{self.total} {self.record_type} record(s): {listing}"


def summarize_ids(
    record_type: str,
    ids: Sequence[RecordID],
    display_limit: int = DEFAULT_DISPLAY_LIMIT,
) -> SelectionSummary:
    shown = tuple(ids[:display_limit])
    return SelectionSummary(
        record_type=record_type,
        total=len(ids),
        shown=shown,
        remainder=len(ids) - len(shown),
    )


def _typer_prompt(message: str) -> bool:
    return typer.confirm(message, default=False)


class ConfirmationGate:
    """Summarize a selection, then ask whether to proceed."""

    def __init__(
        self,
        *,
        display_limit: int = DEFAULT_DISPLAY_LIMIT,
        prompt: PromptFn | None = None,
        console: Console | None = None,
        assume_yes: bool = False,
    ):
        self._display_limit = display_limit
        self._prompt = prompt or _typer_prompt
        self._console = console or Console(stderr=True)
        self._assume_yes = assume_yes
        self._summary: SelectionSummary | None = None

    def summarize(self, record_type: str, ids: Sequence[RecordID]) -> SelectionSummary:
        self._summary = summarize_ids(record_type, ids, self._display_limit)
        self._console.print(
            f"[bold]About to process[/bold] [cyan]{self._summary.total}[/cyan] "
            f"[bold]{record_type}[/bold] record(s):"
        )
        self._console.print("  " + ", ".join(str(i) for i in self._summary.shown), highlight=False)
        if self._summary.remainder:
            self._console.print(f"  [dim]... and {self._summary.remainder} more[/dim]")
        return self._summary

    def confirm(self) -> bool:
        """Return ``True`` only on an explicit yes (or ``assume_yes``)."""
        if self._assume_yes:
            return True
        total = self._summary.total if self._summary else 0
        try:
            return bool(self._prompt(f"Apply the callback to {total} record(s)?"))
        except (typer.Abort, EOFError, KeyboardInterrupt):
            return False
