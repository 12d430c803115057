"""
Root Typer application for the bulkrun CLI.

``bulkrun run`` is the main command; ``worker``, ``queue`` and
``callbacks`` cover queue-mode consumption and discovery.
"""

from __future__ import annotations

import signal
import threading
from types import FrameType

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn

from bulkrun import __version__
from bulkrun.core.errors import InvalidFieldConditionError
from bulkrun.core.logging import configure_logging
from bulkrun.core.models import Progress as RunProgress
from bulkrun.core.settings import BulkRunSettings
from bulkrun.execution.confirm import ConfirmationGate
from bulkrun.cli.utils import err_console, make_context, output_error, output_result
from bulkrun.ops.result import OperationResult

app = typer.Typer(
    name="bulkrun",
    help="bulkrun: apply a callback to many records, inline or through a queue.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bulkrun {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level (default: BULKRUN_LOG_LEVEL or WARNING).",
    ),
) -> None:
    """bulkrun CLI: select records and run callbacks over them."""
    settings = BulkRunSettings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.json_logs)


# ── Cancellation ─────────────────────────────────────────────────────────


class _CancellableGate(ConfirmationGate):
    """Routes Ctrl-C to the cancel event once the operator has confirmed.

    Before confirmation Ctrl-C keeps its default meaning, so it still
    answers "no" at the prompt.
    """

    def __init__(self, cancel_event: threading.Event, **kwargs) -> None:
        super().__init__(**kwargs)
        self._cancel_event = cancel_event
        self.previous_handler: signal.Handlers | None = None

    def confirm(self) -> bool:
        confirmed = super().confirm()
        if confirmed and threading.current_thread() is threading.main_thread():
            self.previous_handler = signal.signal(signal.SIGINT, self._on_sigint)
        return confirmed

    def _on_sigint(self, signum: int, frame: FrameType | None) -> None:
        err_console.print("[yellow]Cancelling after the current chunk...[/yellow]")
        self._cancel_event.set()

    def restore(self) -> None:
        if self.previous_handler is not None:
            signal.signal(signal.SIGINT, self.previous_handler)
            self.previous_handler = None


# ── bulkrun run ──────────────────────────────────────────────────────────


@app.command("run")
def run(
    entity_type: str = typer.Argument(..., help="Record type, e.g. 'node'"),
    callback: str = typer.Argument(..., help="Registered callback name"),
    ids: str | None = typer.Option(None, "--ids", help="Comma-separated record IDs"),
    bundles: str | None = typer.Option(None, "--bundles", help="Comma-separated bundles"),
    fields: str | None = typer.Option(
        None,
        "--fields",
        help=(
            "Field filters: field|operator|value[|query-operator], comma-separated;"
            " a dotted field such as meta.lang addresses a nested key"
        ),
    ),
    size: int | None = typer.Option(
        None, "--size", min=1, help="Records per chunk (default 10)"
    ),
    queue: bool = typer.Option(False, "--queue", help="Enqueue work items instead of running inline"),
    efq_class: str | None = typer.Option(None, "--efq-class", help="Registered query engine name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Select records and apply CALLBACK to each of them."""
    from bulkrun.ops.bulk import run_bulk
    from bulkrun.ops.requests import (
        BulkRunRequest,
        parse_field_conditions,
        parse_id_list,
        parse_name_list,
    )

    try:
        conditions = parse_field_conditions(fields)
    except InvalidFieldConditionError as exc:
        output_error(OperationResult.from_error(exc))

    request = BulkRunRequest(
        record_type=entity_type,
        callback=callback,
        ids=parse_id_list(ids),
        bundles=parse_name_list(bundles),
        fields=conditions,
        chunk_size=size,
        queue=queue,
        query_engine=efq_class,
        assume_yes=yes,
    )
    ctx = make_context(database)

    cancel_event = threading.Event()
    gate = _CancellableGate(
        cancel_event,
        display_limit=ctx.config.display_limit,
        console=err_console,
        assume_yes=yes,
    )
    progress = Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=err_console,
    )
    task: TaskID | None = None

    def on_progress(update: RunProgress) -> None:
        nonlocal task
        if task is None:
            progress.start()
            task = progress.add_task(f"{entity_type} → {callback}", total=update.total)
        progress.update(task, completed=update.processed)

    try:
        result = run_bulk(ctx, request, gate=gate, on_progress=on_progress, cancel_event=cancel_event)
    finally:
        if task is not None:
            progress.stop()
        gate.restore()

    output_result(result, as_json=json_out, title="Run summary")


# ── bulkrun callbacks ────────────────────────────────────────────────────


@app.command("callbacks")
def callbacks(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List callbacks available to ``bulkrun run``."""
    from bulkrun.ops.bulk import list_callbacks

    ctx = make_context(database)
    output_result(list_callbacks(ctx), as_json=json_out, title="Callbacks")


# ── Sub-command registration ─────────────────────────────────────────────

from bulkrun.cli.queue import app as queue_app  # noqa: E402
from bulkrun.cli.worker import app as worker_app  # noqa: E402

app.add_typer(worker_app, name="worker", help="Queue consumer.")
app.add_typer(queue_app, name="queue", help="Durable queue inspection.")
