"""Shared fixtures for bulkrun.ops tests."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from bulkrun.execution.confirm import ConfirmationGate


class RecordingGate(ConfirmationGate):
    """Confirmation gate with a scripted answer that records its use."""

    def __init__(self, answer: bool = True) -> None:
        super().__init__(
            prompt=self._answer,
            console=Console(file=io.StringIO(), color_system=None),
        )
        self.answer = answer
        self.summarized: list[tuple[str, list]] = []
        self.prompted = 0

    def _answer(self, message: str) -> bool:
        self.prompted += 1
        return self.answer

    def summarize(self, record_type, ids):
        self.summarized.append((record_type, list(ids)))
        return super().summarize(record_type, ids)


@pytest.fixture()
def yes_gate() -> RecordingGate:
    return RecordingGate(answer=True)


@pytest.fixture()
def no_gate() -> RecordingGate:
    return RecordingGate(answer=False)
