"""
Activity commands: inspect the per-patient activity log.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect the scraper activity log",
    no_args_is_help=True,
)

ACTION_STYLES = {
    "created": "green",
    "updated": "yellow",
    "skipped": "dim",
}


async def _with_repository(func):
    """Run ``func(repository)`` against the configured database."""
    from medisync.core.config.loader import load_app_config
    from medisync.persistence.db import dispose_engines_async, get_async_engine, get_async_session
    from medisync.persistence.repo import SqlRepository

    config = load_app_config()
    await get_async_engine(config.database.url, echo=config.database.echo)
    try:
        async with get_async_session() as session:
            return await func(SqlRepository(session))
    finally:
        await dispose_engines_async()


@app.command("list")
def list_activities(
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Only show rows of this run",
    ),
    limit: int = typer.Option(
        50,
        "--limit",
        "-n",
        min=1,
        help="Number of rows to show",
    ),
) -> None:
    """List the most recent activity rows."""
    activities = asyncio.run(
        _with_repository(lambda repo: repo.list_activities(run_id=run_id, limit=limit))
    )

    if not activities:
        console.print("[dim]No activity recorded.[/dim]")
        return

    table = Table(title="Scraper Activity", show_header=True, header_style="bold magenta")
    table.add_column("Time", style="dim")
    table.add_column("Run", style="cyan")
    table.add_column("Page", justify="right")
    table.add_column("Row", justify="right")
    table.add_column("Action", justify="center")
    table.add_column("Patient", style="dim")

    for activity in activities:
        style = ACTION_STYLES.get(activity.action_type, "white")
        table.add_row(
            activity.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            activity.run_id[:8],
            str(activity.page_index),
            str(activity.patient_index),
            f"[{style}]{activity.action_type}[/{style}]",
            activity.patient_id,
        )

    console.print(table)


@app.command("last")
def last_position(
    run_id: str = typer.Argument(..., help="Run id to inspect"),
) -> None:
    """Show where a run last recorded progress.

    Prints the restart command; re-processing the last patient is safe.
    """
    position = asyncio.run(_with_repository(lambda repo: repo.last_position(run_id)))

    if position is None:
        err_console.print(f"[red]No activity recorded for run:[/red] {run_id}")
        raise typer.Exit(1)

    page_index, patient_index = position
    console.print(f"Last recorded position: page [bold]{page_index}[/bold], row [bold]{patient_index}[/bold]")
    console.print(
        f"[dim]Restart with:[/dim] medisync sync run --page {page_index} "
        f"--row {patient_index} --run-id {run_id}"
    )


@app.command("runs")
def list_runs(
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Number of runs to show",
    ),
) -> None:
    """List sync runs with their activity counts."""

    async def _load(repo):
        runs = await repo.list_runs(limit=limit)
        return [(run, await repo.count_by_action(run.run_id)) for run in runs]

    rows = asyncio.run(_with_repository(_load))

    if not rows:
        console.print("[dim]No runs recorded.[/dim]")
        return

    table = Table(title="Sync Runs", show_header=True, header_style="bold magenta")
    table.add_column("Run", style="cyan")
    table.add_column("Started")
    table.add_column("Last Activity")
    table.add_column("Patients", justify="right")
    table.add_column("Created", justify="right", style="green")
    table.add_column("Updated", justify="right", style="yellow")
    table.add_column("Skipped", justify="right", style="dim")

    for run, counts in rows:
        table.add_row(
            run.run_id,
            run.started_at.strftime("%Y-%m-%d %H:%M"),
            run.last_activity_at.strftime("%Y-%m-%d %H:%M"),
            str(run.patients),
            str(counts.get("created", 0)),
            str(counts.get("updated", 0)),
            str(counts.get("skipped", 0)),
        )

    console.print(table)
