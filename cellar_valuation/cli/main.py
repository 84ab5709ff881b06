"""Cellar Valuation CLI using Typer."""

import logging
import os
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from cellar_valuation import __version__
from cellar_valuation.cli.valuations import scores_app, valuations_app

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

app = typer.Typer(
    name="cellar-valuation",
    help="Cellar Valuation - external valuations and critic scores for a wine inventory",
    add_completion=False,
)
app.add_typer(valuations_app, name="valuations")
app.add_typer(scores_app, name="scores")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging"),
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@app.command()
def run(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import uvicorn

    typer.echo(f"Starting Cellar Valuation API on http://{host}:{port}")
    typer.echo("Press Ctrl+C to stop the server")

    uvicorn.run(
        "cellar_valuation.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from cellar_valuation.db.engine import init_db as db_init

    typer.echo("Initializing database...")
    db_init()
    typer.echo("Database initialized successfully!")


@app.command()
def version() -> None:
    """Show the Cellar Valuation version."""
    typer.echo(f"Cellar Valuation v{__version__}")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    from cellar_valuation.db.engine import get_database_url
    from cellar_valuation.valuation.adapters import get_adapter_info
    from cellar_valuation.valuation.config import get_default_config

    typer.echo("Cellar Valuation Configuration")
    typer.echo("=" * 40)

    env_file = next((p for p in _env_paths if p.exists()), None)
    typer.echo(f"  .env file: {env_file or 'Not found'}")
    typer.echo(f"  Config file: {os.environ.get('VALUATION_CONFIG_PATH', 'config/valuation.yaml')}")
    typer.echo(f"  Database: {get_database_url()}")

    config = get_default_config()
    typer.echo(
        f"  Thresholds: matched >= {config.matching.confidence_threshold}, "
        f"review >= {config.matching.review_threshold}"
    )
    typer.echo(
        f"  Staleness: valuations {config.staleness.valuation_days}d, "
        f"critic scores {config.staleness.critic_score_days}d"
    )
    protected = ", ".join(sorted(s.value for s in config.protected_statuses)) or "none"
    typer.echo(f"  Protected statuses: {protected}")

    table = Table(title="Sources")
    table.add_column("Name", style="bold")
    table.add_column("Adapter")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Version")

    sources = [(s, "valuation") for s in config.valuation_sources]
    sources.append((config.critic_score_source, "critic scores"))
    for source, kind in sources:
        info = get_adapter_info(source.adapter)
        status = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"
        if info is None:
            status = "[red]unknown adapter[/red]"
        table.add_row(source.name, source.adapter, kind, status, info["version"] if info else "-")

    Console().print(table)


@app.command()
def worker(
    burst: bool = typer.Option(False, "--burst", help="Run in burst mode (exit when queue empty)"),
) -> None:
    """
    Start the arq worker running the weekly refresh tasks.

    Examples:
        cellar-valuation worker
        cellar-valuation worker --burst
    """
    from arq import run_worker

    from cellar_valuation.valuation.jobs import WorkerSettings

    rprint("[bold]Starting valuation worker...[/bold]")
    rprint("Press Ctrl+C to stop\n")

    try:
        run_worker(WorkerSettings, burst=burst)
    except Exception as e:
        rprint(f"[red]Error:[/red] Worker failed: {e}")
        rprint("\nMake sure Redis is running (REDIS_HOST / REDIS_PORT)")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
