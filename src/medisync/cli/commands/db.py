"""
Database management commands.
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
) -> None:
    """Initialize the database schema.

    Creates all tables. Use --drop to reset the database.
    """
    from medisync.core.config.loader import load_app_config

    config = load_app_config()

    if drop_existing and not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
        raise typer.Abort()

    asyncio.run(_init(config.database.url, drop_existing))
    console.print("[green]OK[/green] Database initialized")


async def _init(url: str, drop_existing: bool) -> None:
    from medisync.persistence.db import dispose_engines_async, drop_db_async, init_db_async

    try:
        if drop_existing:
            console.print("[yellow]Dropping existing tables...[/yellow]")
            await drop_db_async(url)
        console.print("Creating database schema...")
        await init_db_async(url)
    finally:
        await dispose_engines_async()


@app.command("migrate")
def run_migrations(
    revision: str = typer.Option(
        "head",
        "--revision",
        "-r",
        help="Target revision (default: head)",
    ),
) -> None:
    """Run database migrations."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config("alembic.ini")

    console.print(f"Running migrations to: {revision}")

    try:
        command.upgrade(alembic_cfg, revision)
        console.print("[green]OK[/green] Migrations complete")
    except Exception as e:
        err_console.print(f"[red]Migration failed:[/red] {e}")
        raise typer.Exit(1)


@app.command("current")
def show_current() -> None:
    """Show current database revision."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config("alembic.ini")

    console.print("[bold]Current database revision:[/bold]")
    command.current(alembic_cfg, verbose=True)
