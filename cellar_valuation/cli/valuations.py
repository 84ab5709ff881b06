"""
Valuation CLI Commands
======================

CLI commands for fetching valuations and critic scores and inspecting the
refresh queue.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from cellar_valuation.core.errors import WineNotFoundError
from cellar_valuation.core.schema import WinePair
from cellar_valuation.db.engine import get_session
from cellar_valuation.valuation.jobs import (
    fetch_all_critic_scores,
    fetch_all_valuations,
    refresh_all_critic_scores,
    refresh_all_valuations,
)
from cellar_valuation.valuation.orchestrator import ValuationService

console = Console()
valuations_app = typer.Typer(help="Valuation commands")
scores_app = typer.Typer(help="Critic score commands")

_STATUS_STYLES = {
    "matched": "green",
    "confirmed": "green",
    "manual": "cyan",
    "needs_review": "yellow",
    "pending": "dim",
    "no_match": "red",
}


def _print_pairs(title: str, pairs: list[WinePair]) -> None:
    if not pairs:
        rprint("[green]Nothing to refresh[/green]")
        return

    table = Table(title=title)
    table.add_column("Wine ID", justify="right")
    table.add_column("Producer")
    table.add_column("Wine", style="bold")
    table.add_column("Vintage")

    for pair in pairs:
        table.add_row(str(pair.wine_id), pair.producer_name, pair.wine_name, str(pair.vintage or "NV"))

    console.print(table)


def _print_counters(title: str, counters: dict[str, int]) -> None:
    table = Table(title=title)
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    for key, value in counters.items():
        style = "red" if key == "errors" and value else ""
        table.add_row(key, f"[{style}]{value}[/{style}]" if style else str(value))
    console.print(table)


# Valuations


@valuations_app.command("fetch")
def fetch_valuation(
    wine_id: int = typer.Option(..., "--wine", "-w", help="Catalog wine ID"),
    user_id: int = typer.Option(..., "--user", "-u", help="Owner user ID"),
    vintage: Optional[int] = typer.Option(None, "--vintage", "-v", help="Vintage (omit for NV)"),
) -> None:
    """
    Fetch the valuation for one wine and vintage.

    Examples:
        cellar-valuation valuations fetch --wine 12 --vintage 2015 --user 1
    """
    with get_session() as session:
        service = ValuationService(session)
        try:
            with console.status("[bold blue]Querying sources...[/bold blue]"):
                result = asyncio.run(service.fetch_valuation(wine_id, vintage, user_id))
        except WineNotFoundError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    valuation = result.valuation
    style = _STATUS_STYLES.get(valuation.status.value, "")
    rprint(f"\n[bold]Status:[/bold] [{style}]{valuation.status.value}[/{style}]")
    if valuation.price_estimate is not None:
        rprint(f"  Price: {valuation.price_estimate:.2f}")
        rprint(f"  Source: {valuation.source} ({valuation.source_name})")
        if valuation.confidence is not None:
            rprint(f"  Confidence: {valuation.confidence:.2f}")
        if valuation.source_url:
            rprint(f"  URL: {valuation.source_url}")


@valuations_app.command("stale")
def stale_valuations(
    user_id: int = typer.Option(..., "--user", "-u", help="Owner user ID"),
) -> None:
    """List inventory pairs whose valuation is missing or stale."""
    with get_session() as session:
        pairs = ValuationService(session).list_pairs_needing_valuation(user_id)
    _print_pairs("Valuations to refresh", pairs)


@valuations_app.command("run")
def run_valuations(
    user_id: Optional[int] = typer.Option(None, "--user", "-u", help="Only this user (default: all)"),
    delay: Optional[float] = typer.Option(None, "--delay", "-d", help="Seconds between requests"),
) -> None:
    """
    Refresh stale valuations sequentially.

    Examples:
        cellar-valuation valuations run --user 1 --delay 3
        cellar-valuation valuations run
    """
    with get_session() as session:
        service = ValuationService(session)
        if user_id is None:
            result = asyncio.run(refresh_all_valuations(service, delay))
        else:
            if delay is None:
                delay = service.config.batch.delay_seconds
            result = asyncio.run(fetch_all_valuations(service, user_id, delay))

    _print_counters("Valuation batch", result.to_dict())


@valuations_app.command("summary")
def valuation_summary(
    user_id: int = typer.Option(..., "--user", "-u", help="Owner user ID"),
) -> None:
    """Show cellar cost, value and gain/loss."""
    with get_session() as session:
        summary = ValuationService(session).valuation_summary(user_id)

    gain_style = "green" if summary.gain_loss >= 0 else "red"
    rprint("\n[bold]Cellar Valuation[/bold]")
    rprint(f"  Bottles: {summary.total_bottles}")
    rprint(f"  Cost: {summary.total_cost:.2f}")
    rprint(f"  Value: {summary.total_value:.2f}")
    rprint(
        f"  Gain/Loss: [{gain_style}]{summary.gain_loss:+.2f} "
        f"({summary.gain_loss_percent:+.1f}%)[/{gain_style}]"
    )
    rprint(f"  Wines valued: {summary.wines_with_valuation}")
    rprint(f"  Needing review: {summary.wines_needing_review}")
    rprint(f"  No match: {summary.wines_no_match}")


# Critic scores


@scores_app.command("fetch")
def fetch_scores(
    wine_id: int = typer.Option(..., "--wine", "-w", help="Catalog wine ID"),
    user_id: int = typer.Option(..., "--user", "-u", help="Owner user ID"),
    vintage: Optional[int] = typer.Option(None, "--vintage", "-v", help="Vintage (omit for NV)"),
) -> None:
    """Fetch critic scores for one wine and vintage."""
    with get_session() as session:
        service = ValuationService(session)
        try:
            with console.status("[bold blue]Fetching critic scores...[/bold blue]"):
                result = asyncio.run(service.fetch_critic_scores(wine_id, vintage, user_id))
        except WineNotFoundError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    if not result.success:
        rprint(f"[yellow]{result.outcome.value}:[/yellow] {result.error}")
        return

    table = Table(title="Critic Scores")
    table.add_column("Critic", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Note")
    for score in result.scores:
        table.add_row(score.critic.value, str(score.score), score.note or "")
    console.print(table)


@scores_app.command("stale")
def stale_scores(
    user_id: int = typer.Option(..., "--user", "-u", help="Owner user ID"),
) -> None:
    """List inventory pairs whose critic scores are missing or stale."""
    with get_session() as session:
        pairs = ValuationService(session).list_pairs_needing_critic_scores(user_id)
    _print_pairs("Critic scores to refresh", pairs)


@scores_app.command("run")
def run_scores(
    user_id: Optional[int] = typer.Option(None, "--user", "-u", help="Only this user (default: all)"),
    delay: Optional[float] = typer.Option(None, "--delay", "-d", help="Seconds between requests"),
) -> None:
    """Refresh stale critic scores sequentially."""
    with get_session() as session:
        service = ValuationService(session)
        if user_id is None:
            result = asyncio.run(refresh_all_critic_scores(service, delay))
        else:
            if delay is None:
                delay = service.config.batch.delay_seconds
            result = asyncio.run(fetch_all_critic_scores(service, user_id, delay))

    _print_counters("Critic score batch", result.to_dict())
