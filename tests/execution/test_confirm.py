"""Tests for the confirmation gate and selection summary."""

from __future__ import annotations

import io

import pytest
import typer
from rich.console import Console

from bulkrun.execution.confirm import ConfirmationGate, summarize_ids


def quiet_console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=200, color_system=None), buffer


class TestSummarizeIds:
    def test_short_selection_lists_everything(self):
        summary = summarize_ids("node", [12, 56])
        assert summary.shown == (12, 56)
        assert summary.remainder == 0
        assert summary.text == "2 node record(s): 12, 56"

    def test_exactly_twenty(self):
        summary = summarize_ids("node", list(range(20)))
        assert len(summary.shown) == 20
        assert summary.remainder == 0

    def test_long_selection_is_truncated(self):
        summary = summarize_ids("node", list(range(1, 58)))
        assert summary.shown == tuple(range(1, 21))
        assert summary.remainder == 37
        assert summary.text.endswith("20 (+37 more)")

    def test_custom_limit(self):
        assert summarize_ids("node", [1, 2, 3], display_limit=2).remainder == 1


class TestConfirmationGate:
    def test_summarize_prints_ids_and_remainder(self):
        console, buffer = quiet_console()
        gate = ConfirmationGate(console=console, prompt=lambda msg: True)
        gate.summarize("node", list(range(1, 58)))
        output = buffer.getvalue()
        assert "About to process 57 node record(s)" in output
        assert "1, 2, 3" in output
        assert "... and 37 more" in output

    def test_yes(self):
        console, _ = quiet_console()
        gate = ConfirmationGate(console=console, prompt=lambda msg: True)
        gate.summarize("node", [12])
        assert gate.confirm() is True

    def test_no(self):
        console, _ = quiet_console()
        prompts = []
        gate = ConfirmationGate(console=console, prompt=lambda msg: prompts.append(msg) or False)
        gate.summarize("node", [12, 56])
        assert gate.confirm() is False
        assert prompts == ["Apply the callback to 2 record(s)?"]

    @pytest.mark.parametrize("exc", [typer.Abort(), EOFError(), KeyboardInterrupt()])
    def test_interrupted_prompt_counts_as_no(self, exc):
        def prompt(msg):
            raise exc

        console, _ = quiet_console()
        gate = ConfirmationGate(console=console, prompt=prompt)
        assert gate.confirm() is False

    def test_assume_yes_never_prompts(self):
        def prompt(msg):
            raise AssertionError("prompted")

        console, _ = quiet_console()
        assert ConfirmationGate(console=console, prompt=prompt, assume_yes=True).confirm() is True
