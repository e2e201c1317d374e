"""Tidal ingestion CLI using Typer."""

import asyncio
from typing import List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from core.config import settings
from core.database import get_session_maker, init_models
from core.logging import setup_logging
from ingestion.events import (
    MAX_DURATION_DAYS,
    MIN_DURATION_DAYS,
    EventFetchConfig,
    FetchTidalEventsAction,
)
from ingestion.extractors.tidal_api import TidalAPIClient
from ingestion.loaders.tidal_loader import TidalLoader
from ingestion.stations import FetchTidalStationsAction
from schemas.results import EventSyncSummary, OutcomeStatus, StationSyncSummary

console = Console()
app = typer.Typer(
    name="tidal-ingest",
    help="Fetch UK tidal stations and tidal event predictions",
    add_completion=False,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
) -> None:
    setup_logging(log_level)


# ============================================================================
# Async runners
# ============================================================================

async def _run_station_sync(station_id: Optional[str] = None) -> StationSyncSummary:
    async with get_session_maker()() as session:
        action = FetchTidalStationsAction(session, TidalAPIClient())
        if station_id:
            return await action.refresh_station(station_id)
        return await action.execute()


async def _run_event_sync(
    duration: int,
    station_ids: List[str],
    config: EventFetchConfig,
    force_refresh: bool
) -> Optional[EventSyncSummary]:
    """None when there are no stations at all"""
    async with get_session_maker()() as session:
        if await TidalLoader(session).count_stations() == 0:
            return None
        action = FetchTidalEventsAction(session, TidalAPIClient(), config)
        return await action.execute(
            duration=duration,
            station_ids=station_ids,
            force_refresh=force_refresh
        )


# ============================================================================
# Output
# ============================================================================

def _display_station_summary(summary: StationSyncSummary) -> None:
    table = Table(title="Station sync")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Processed", str(summary.stations_processed))
    table.add_row("Added", str(summary.stations_added))
    table.add_row("Updated", str(summary.stations_updated))
    table.add_row("Unchanged", str(summary.stations_unchanged))
    table.add_row("Skipped", str(summary.stations_skipped))
    table.add_row("Time", f"{summary.execution_time:.2f}s")
    console.print(table)


def _display_event_summary(summary: EventSyncSummary) -> None:
    table = Table(title="Tidal event fetch")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Stations processed", str(summary.stations_processed))
    table.add_row("Stations succeeded", str(summary.stations_succeeded))
    table.add_row("Stations failed", str(summary.stations_failed))
    table.add_row("Events added", str(summary.events_added))
    table.add_row("Events updated", str(summary.events_updated))
    table.add_row("Events skipped", str(summary.events_skipped))
    table.add_row("Time", f"{summary.execution_time:.2f}s")
    console.print(table)

    failed = [o for o in summary.outcomes if o.status == OutcomeStatus.ERROR]
    for outcome in failed:
        rprint(f"  [red]✗[/red] {outcome.station_id}: {outcome.error}")

    if summary.missing_station_ids:
        rprint(
            f"[yellow]Unknown station IDs:[/yellow] {', '.join(summary.missing_station_ids)}"
        )


def _finish(success: bool, message: Optional[str]) -> None:
    if success:
        rprint(f"\n[green]Done.[/green] {message or ''}".rstrip())
        return
    rprint(f"\n[red]Failed:[/red] {message or 'see log for details'}")
    raise typer.Exit(1)


# ============================================================================
# Commands
# ============================================================================

@app.command("init-db")
def init_db() -> None:
    """Initialize the database (create tables)."""
    typer.echo("Initializing database...")
    asyncio.run(init_models())
    typer.echo("Database initialized successfully!")


@app.command("fetch-stations")
def fetch_stations() -> None:
    """Fetch all tidal stations from the API and store them."""
    rprint("[bold]Fetching tidal stations...[/bold]")

    with console.status("[bold blue]Fetching station catalog...[/bold blue]"):
        summary = asyncio.run(_run_station_sync())

    _display_station_summary(summary)
    _finish(summary.success, summary.message)


@app.command("fetch-station")
def fetch_station(
    station_id: str = typer.Argument(..., help="Station identifier, e.g. 0001"),
) -> None:
    """Fetch one tidal station from the API and store it."""
    rprint(f"[bold]Fetching tidal station {station_id}...[/bold]")

    summary = asyncio.run(_run_station_sync(station_id))

    _display_station_summary(summary)
    _finish(summary.success, summary.message)


@app.command("fetch-events")
def fetch_events(
    duration: int = typer.Option(
        settings.EVENTS_DURATION_DAYS,
        "--duration",
        "-d",
        min=MIN_DURATION_DAYS,
        max=MAX_DURATION_DAYS,
        help="Number of days to fetch (1-7)",
    ),
    station: Optional[List[str]] = typer.Option(
        None, "--station", "-s", help="Station ID to fetch (repeatable)"
    ),
    batch: int = typer.Option(
        settings.EVENTS_BATCH_SIZE, "--batch", "-b", min=1, help="Number of stations to process"
    ),
    delay: int = typer.Option(
        settings.EVENTS_REQUEST_DELAY_MS, "--delay", min=0, help="Milliseconds between API calls"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the stale window"),
) -> None:
    """
    Fetch tidal events for a batch of stations.

    Examples:
        tidal-ingest fetch-events
        tidal-ingest fetch-events --duration 3 --station 0001 --station 0113A
        tidal-ingest fetch-events --batch 25 --delay 1000 --force
    """
    station_ids = list(station or [])
    config = EventFetchConfig(batch_size=batch, request_delay_ms=delay)

    rprint(f"[bold]Fetching tidal events[/bold] for {duration} day(s)")
    rprint(f"  Batch size: {batch}, Delay: {delay}ms")
    if station_ids:
        rprint(f"  Stations: {', '.join(station_ids)}")
    else:
        rprint(f"  Fetching oldest stations first (limit: {batch})")

    summary = asyncio.run(_run_event_sync(duration, station_ids, config, force))

    if summary is None:
        rprint("[red]Error:[/red] No tidal stations in the database.")
        rprint("Run [bold]tidal-ingest fetch-stations[/bold] first.")
        raise typer.Exit(1)

    _display_event_summary(summary)
    _finish(summary.success, summary.message)


@app.command()
def serve(
    host: str = typer.Option(settings.API_HOST, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.API_PORT, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the read API."""
    import uvicorn

    typer.echo(f"Starting Tidal Ingestion API on http://{host}:{port}")
    uvicorn.run("api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
