"""
MediSync CLI - Main entry point.

Synchronizes patients, appointments and invoices from the MediOnline
portal into a local database, resumably.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from medisync import __app_name__, __version__

# Credentials and start-position overrides may live in .env
load_dotenv()

install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows; patient names carry accents
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(encoding="utf-8", errors="replace")

console = Console(legacy_windows=False)
err_console = Console(stderr=True, legacy_windows=False)

app = typer.Typer(
    name=__app_name__,
    help="Resumable MediOnline patient synchronization",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """MediSync - MediOnline patient synchronization."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import activity, db, patients, sync  # noqa: E402

app.add_typer(sync.app, name="sync", help="Synchronize patients from MediOnline")
app.add_typer(activity.app, name="activity", help="Inspect the scraper activity log")
app.add_typer(patients.app, name="patients", help="Patient records")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize MediSync database and configuration.

    Creates required directories, the default configuration file,
    and the database schema.
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from medisync.core.config.loader import load_app_config
    from medisync.persistence.db import dispose_engines_async, init_db_async

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Creating directories...", total=None)

        for dir_path in (Path("configs"), Path("data"), Path("logs"), Path("snapshots")):
            dir_path.mkdir(parents=True, exist_ok=True)

        progress.update(task, description="Creating default configuration...")

        app_config_path = Path("configs/app.yaml")
        if not app_config_path.exists() or force:
            _create_default_app_config(app_config_path)

        progress.update(task, description="Initializing database...")

        config = load_app_config(app_config_path)

        async def _init_db() -> None:
            try:
                await init_db_async(config.database.url)
            finally:
                await dispose_engines_async()

        asyncio.run(_init_db())

        progress.update(task, description="Done!")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - MediSync initialized successfully![/bold green]\n\n"
        "Created:\n"
        "  - [cyan]configs/app.yaml[/cyan] - Application configuration\n"
        "  - [cyan]data/[/cyan] - Database storage\n"
        "  - [cyan]logs/[/cyan] - Log files\n"
        "  - [cyan]snapshots/[/cyan] - Error screenshots\n\n"
        "Next steps:\n"
        "  1. Put MEDIONLINE_USERNAME and MEDIONLINE_PASSWORD in [yellow].env[/yellow]\n"
        "  2. Run a sync: [yellow]medisync sync run[/yellow]\n"
        "  3. Inspect progress: [yellow]medisync activity runs[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Create default app.yaml configuration."""
    default_config = """\
# MediSync Configuration
# Credentials are read from MEDIONLINE_USERNAME / MEDIONLINE_PASSWORD

data_dir: data

portal:
  url: https://www.medionline.ch/MediOnlineNet
  headless: ${HEADLESS_MODE:-false}
  browser: chromium
  default_timeout_ms: 60000
  readiness_timeout_ms: 5000
  readiness_attempts: 3
  screenshots_on_error: true
  screenshots_path: snapshots

# Consecutive failures allowed at one position; wait is base_delay * attempt
retry:
  max_attempts: 3
  base_delay_seconds: 2.0

database:
  url: sqlite:///data/medisync.db
  echo: false

logging:
  level: INFO
  file: logs/medisync.log
  json_format: true
  rich_console: true
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status() -> None:
    """Show MediSync record counts."""
    from rich.table import Table

    from medisync.core.config.loader import load_app_config
    from medisync.persistence.db import dispose_engines_async, get_async_engine, get_async_session
    from medisync.persistence.repo import SqlRepository

    config = load_app_config()

    db_url = config.database.url
    if db_url.startswith("sqlite:///") and not Path(db_url.split(":///", 1)[1]).exists():
        err_console.print("[red]MediSync not initialized. Run:[/red] medisync init")
        raise typer.Exit(1)

    async def _counts() -> dict[str, int]:
        await get_async_engine(db_url, echo=config.database.echo)
        try:
            async with get_async_session() as session:
                return await SqlRepository(session).record_counts()
        finally:
            await dispose_engines_async()

    counts = asyncio.run(_counts())

    console.print()
    console.print("[bold]MediSync Status[/bold]")
    console.print()

    table = Table(title="Records", show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Count", justify="right")
    for label, count in counts.items():
        table.add_row(label.replace("_", " "), str(count))

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
