"""
Sync commands: run the portal traversal into the local database.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Synchronize patients from MediOnline",
    no_args_is_help=True,
)


@app.command("run")
def run_sync(
    page: Optional[int] = typer.Option(
        None,
        "--page",
        "-p",
        min=1,
        help="Result page to start on (default: CURR_PAGE_INDEX or 1)",
    ),
    row: Optional[int] = typer.Option(
        None,
        "--row",
        "-r",
        min=0,
        help="Row to start at on that page (default: CURR_PATIENT_INDEX or 0)",
    ),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Reuse an existing run id when resuming manually",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml (default: configs/app.yaml)",
    ),
    last_name: str = typer.Option("", "--last-name", help="Restrict the search by last name"),
    first_name: str = typer.Option("", "--first-name", help="Restrict the search by first name"),
    date_of_birth: str = typer.Option("", "--dob", help="Restrict the search by birth date (dd.mm.yyyy)"),
) -> None:
    """Walk the patient search results and reconcile every patient.

    Examples:
        medisync sync run
        medisync sync run --page 4 --row 7 --run-id 3f2a...
        medisync sync run --last-name Muller
    """
    from medisync.core.config.loader import ConfigError, load_app_config, start_position_from_env
    from medisync.core.normalize.snapshots import PatientFilter
    from medisync.core.orchestrator import RunContext

    try:
        config = load_app_config(config_path)
        env_page, env_row = start_position_from_env()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)

    start_page = page if page is not None else env_page
    start_row = row if row is not None else env_row

    context = RunContext(run_id=run_id) if run_id else RunContext()
    criteria = PatientFilter(
        last_name=last_name,
        first_name=first_name,
        date_of_birth=date_of_birth,
    )

    console.print()
    console.print(f"[bold]Starting sync run[/bold] [cyan]{context.run_id}[/cyan]")
    console.print(f"[dim]Starting at page {start_page}, row {start_row}[/dim]")
    console.print()

    failed = asyncio.run(_run(config, context, criteria, start_page, start_row))

    console.print()
    _show_summary(context)

    if failed:
        raise typer.Exit(1)


async def _run(config, context, criteria, page_index: int, patient_index: int) -> bool:
    """Run the supervised traversal. Returns True when the run failed."""
    from medisync.core.activity import ActivityTracker
    from medisync.core.config.loader import load_credentials
    from medisync.core.errors import MediSyncError, TraversalError
    from medisync.core.logging import setup_logging
    from medisync.core.orchestrator import RetrySupervisor, TraversalDriver
    from medisync.core.portals import MediOnlinePortal
    from medisync.core.reconcile import ReconciliationEngine
    from medisync.core.session import SessionController
    from medisync.persistence.db import dispose_engines_async, get_async_engine, get_async_session
    from medisync.persistence.repo import SqlRepository

    config.ensure_directories()
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )

    await get_async_engine(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
    )

    try:
        async with get_async_session() as db_session:
            repository = SqlRepository(db_session)
            session = SessionController(
                lambda: MediOnlinePortal(config.portal),
                config.portal.url,
                logger=context.logger("session"),
            )
            driver = TraversalDriver(
                session,
                ReconciliationEngine(repository),
                ActivityTracker(repository, context),
                context,
                criteria=criteria,
            )
            supervisor = RetrySupervisor(
                session,
                driver,
                load_credentials(),
                config.retry,
                context,
            )

            try:
                page_index, patient_index = await supervisor.run(page_index, patient_index)
            except MediSyncError as e:
                position = e.position if isinstance(e, TraversalError) else context.position
                err_console.print(f"[red]Sync failed[/red] [dim]({e.code})[/dim]: {e}")
                _print_restart_hint(context, position)
                return True

        console.print(
            f"[green]OK[/green] Traversal finished at page {page_index}, row {patient_index}"
        )
        return False
    finally:
        await dispose_engines_async()


def _print_restart_hint(context, position: tuple[int, int] | None) -> None:
    if position is None:
        return
    page_index, patient_index = position
    err_console.print(f"Last known position: page {page_index}, row {patient_index}")
    err_console.print(
        f"[dim]Resume with:[/dim] medisync sync run --page {page_index} "
        f"--row {patient_index} --run-id {context.run_id}"
    )


def _show_summary(context) -> None:
    """Print the run statistics."""
    stats = context.stats

    table = Table(title="Sync Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Run id", context.run_id)
    table.add_row("Patients processed", str(stats.patients_processed))
    table.add_row("Created", f"[green]{stats.patients_created}[/green]")
    table.add_row("Updated", f"[yellow]{stats.patients_updated}[/yellow]")
    table.add_row("Skipped", str(stats.patients_skipped))
    table.add_row("Non-patient rows", str(stats.non_patient_rows))
    table.add_row("Pages visited", str(stats.pages_visited))
    table.add_row("Retries", str(stats.retries))
    if stats.duration_seconds is not None:
        table.add_row("Duration", f"{stats.duration_seconds:.1f}s")

    console.print(table)
