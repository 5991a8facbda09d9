"""
Patient commands: inspect stored patients and import exported patient sheets.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Patient records",
    no_args_is_help=True,
)


@app.command("import-pdf")
def import_pdf(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="PDF export with one patient sheet per page",
    ),
) -> None:
    """Upsert every patient of a PDF export into the database."""
    from medisync.core.extract.document import PdfPatientExtractor

    snapshots = PdfPatientExtractor().extract_file(file)
    if not snapshots:
        err_console.print(f"[yellow]No patient found in[/yellow] {file}")
        raise typer.Exit(1)

    console.print(f"Found [bold]{len(snapshots)}[/bold] patient(s) in {file.name}")

    totals = asyncio.run(_upsert_all(snapshots))

    table = Table(title="PDF Import", show_header=True, header_style="bold magenta")
    table.add_column("Action", style="cyan")
    table.add_column("Count", justify="right")
    for action in ("created", "updated", "skipped"):
        table.add_row(action, str(totals.get(action, 0)))
    console.print(table)


async def _upsert_all(snapshots) -> dict[str, int]:
    from medisync.core.config.loader import load_app_config
    from medisync.core.reconcile import ReconciliationEngine
    from medisync.persistence.db import dispose_engines_async, get_async_engine, get_async_session
    from medisync.persistence.repo import SqlRepository

    config = load_app_config()
    await get_async_engine(config.database.url, echo=config.database.echo)

    totals: dict[str, int] = {}
    try:
        async with get_async_session() as session:
            engine = ReconciliationEngine(SqlRepository(session))
            for snapshot in snapshots:
                upsert = await engine.upsert_patient(snapshot)
                totals[upsert.action.value] = totals.get(upsert.action.value, 0) + 1
                console.print(f"  {upsert.action.value:<8} {snapshot.display_name}")
    finally:
        await dispose_engines_async()
    return totals
