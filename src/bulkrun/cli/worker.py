"""
CLI: ``bulkrun worker`` drains queued work items.
"""

from __future__ import annotations

import typer

from bulkrun.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command("drain")
def drain(
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Stop after N items"),
    queue_name: str | None = typer.Option(None, "--queue", "-q", help="Queue name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Process queued items until the queue is empty (or --limit is hit)."""
    from bulkrun.ops.bulk import drain_queue
    from bulkrun.ops.requests import DrainQueueRequest

    ctx = make_context(database)
    result = drain_queue(ctx, DrainQueueRequest(limit=limit, queue_name=queue_name))
    output_result(result, as_json=json_out, title="Drain")
