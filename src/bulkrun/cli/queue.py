"""
CLI: ``bulkrun queue`` inspects the durable queue.
"""

from __future__ import annotations

import typer

from bulkrun.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command("status")
def status(
    queue_name: str | None = typer.Option(None, "--queue", "-q", help="Queue name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show how many work items are waiting."""
    from bulkrun.ops.bulk import queue_status

    ctx = make_context(database)
    output_result(queue_status(ctx, queue_name), as_json=json_out, title="Queue")
