"""
CLI interface for EcoCharge.

Provides command-line access to logging, listing and analysing
charging sessions.
"""

import logging
import math
import re
import sys
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from ecocharge.config.loader import AppConfig, default_config, load_app_config
from ecocharge.core.derivation import ALL_MONTHS, DAILY, Bucket, series_mode_for
from ecocharge.core.form import SessionForm, ValidationError
from ecocharge.core.labels import format_display_date
from ecocharge.core.state import SessionState
from ecocharge.storage.errors import StoreError
from ecocharge.storage.models import ChargingSession
from ecocharge.storage.repository import get_repository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1

_MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database path (overrides config and $ECOCHARGE_DB)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """EcoCharge - electric vehicle charging expense tracker."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    try:
        ctx.obj = load_app_config(str(config), db_path=db) if config else default_config(db)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if ctx.invoked_subcommand is None:
        console.print("EcoCharge - Use --help to see available commands")


def _load_state(config: AppConfig) -> SessionState:
    """Load the session collection, exiting with an error notice on failure."""
    state = SessionState(get_repository(config.db_path))
    try:
        state.load()
    except StoreError as e:
        console.print(f"[red]Error:[/] could not load sessions: {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    return state


def _check_month(month: str) -> str:
    if month != ALL_MONTHS and not _MONTH_PATTERN.match(month):
        console.print(f"[red]Error:[/] month must be YYYY-MM or '{ALL_MONTHS}', got {month!r}")
        sys.exit(EXIT_CODE_FAIL)
    return month


def _format_currency(amount: float, symbol: str) -> str:
    """Format currency with symbol and thousands separator."""
    return f"{symbol}{amount:,.2f}"


def _month_option(default: str = ALL_MONTHS):
    return typer.Option(
        default,
        "--month",
        "-m",
        help="Restrict to one month (YYYY-MM) or 'all'"
    )


@app.command()
def init(ctx: typer.Context):
    """Initialize the EcoCharge database."""
    config: AppConfig = ctx.obj
    try:
        initialize_schema(config.db_path)
        console.print(f"[green]✓[/] Database initialized at {config.db_path}")
        sys.exit(EXIT_CODE_OK)
    except StoreError as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def providers(ctx: typer.Context):
    """List known charging providers."""
    config: AppConfig = ctx.obj
    for name in config.providers:
        console.print(name)


@app.command()
def add(
    ctx: typer.Context,
    provider: str = typer.Option(..., "--provider", "-p", help="Charging provider"),
    date: Optional[str] = typer.Option(
        None,
        "--date",
        "-d",
        help="Session date as YYYY-MM-DD (default: today)"
    ),
    duration: str = typer.Option(..., "--duration", help="Duration in minutes"),
    price: str = typer.Option(..., "--price", help="Unit price per kWh"),
    kwh: str = typer.Option(..., "--kwh", help="Energy received in kWh"),
    cost: Optional[str] = typer.Option(
        None,
        "--cost",
        help="Total cost (default: price x kWh rounded to 2 decimals)"
    )
):
    """Log a new charging session."""
    config: AppConfig = ctx.obj
    form = SessionForm(
        provider=provider,
        duration_minutes=duration,
        price_per_kwh=price,
        total_kwh=kwh,
        total_cost=cost
    )
    if date:
        form.date = date

    try:
        session = form.to_session()
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if session.provider not in config.providers:
        console.print(f"[yellow]Note:[/] '{session.provider}' is not a known provider")

    state = SessionState(get_repository(config.db_path))
    try:
        state.add(session)
    except StoreError as e:
        console.print(f"[red]Error:[/] could not save session: {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(
        f"[green]✓[/] Saved {session.provider} on {format_display_date(session.date)}: "
        f"{_format_currency(session.total_cost, config.currency_symbol)}"
    )
    console.print(f"[dim]id: {session.id}[/]")


@app.command("import")
def import_sessions(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="YAML or JSON file with a list of sessions")
):
    """Import a batch of sessions from a file.

    Every record is validated first; the batch is then written in a single
    transaction, so either all records are saved or none.
    """
    config: AppConfig = ctx.obj
    try:
        records = _read_import_file(path)
        sessions = _sessions_from_records(records)
    except (OSError, yaml.YAMLError, ValueError) as e:
        console.print(f"[red]Invalid import file:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    state = SessionState(get_repository(config.db_path))
    try:
        count = state.add_many(sessions)
    except StoreError as e:
        console.print(f"[red]Error:[/] batch was not saved: {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Imported {count} sessions")


def _read_import_file(path: Path) -> List[dict]:
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict) and 'sessions' in data:
        data = data['sessions']
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("expected a list of session records")
    return data


def _sessions_from_records(records: List[dict]) -> List[ChargingSession]:
    sessions = []
    for index, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            raise ValueError(f"record {index}: expected a mapping")
        try:
            sessions.append(SessionForm.from_mapping(record).to_session())
        except ValidationError as e:
            raise ValueError(f"record {index}: {e}")
    return sessions


@app.command("list")
def list_sessions(
    ctx: typer.Context,
    month: str = _month_option()
):
    """Show the charging history, newest first."""
    config: AppConfig = ctx.obj
    state = _load_state(config)
    state.set_filter(_check_month(month))
    dashboard = state.dashboard()

    if not dashboard.sessions:
        console.print("\n[bold]No sessions yet[/]")
        console.print("Log your first charge with `ecocharge add`.\n")
        return

    table = Table(title=f"Charging History ({len(dashboard.sessions)} records)")
    table.add_column("ID", style="dim")
    table.add_column("Provider", style="bold green")
    table.add_column("Date")
    table.add_column("Duration")
    table.add_column("Energy", justify="right")
    table.add_column("Cost", justify="right", style="bold")
    for session in dashboard.sessions:
        table.add_row(
            session.id[:8],
            session.provider,
            format_display_date(session.date),
            f"{session.duration_minutes} dk",
            f"{session.total_kwh:g} kWh",
            _format_currency(session.total_cost, config.currency_symbol)
        )
    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id (or a unique prefix)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")
):
    """Delete a charging session after confirmation."""
    config: AppConfig = ctx.obj
    state = _load_state(config)

    session_id = session_id.strip()
    if not session_id:
        console.print("[red]Error:[/] session id cannot be empty")
        sys.exit(EXIT_CODE_FAIL)

    exact = state.find(session_id)
    matches = [exact] if exact else [s for s in state.sessions if s.id.startswith(session_id)]
    if not matches:
        console.print(f"[yellow]No session found with id {session_id}[/]")
        return
    if len(matches) > 1:
        console.print(f"[red]Error:[/] id prefix {session_id} matches {len(matches)} sessions")
        sys.exit(EXIT_CODE_FAIL)

    session = matches[0]
    if not yes:
        confirmed = typer.confirm(
            f"Delete {session.provider} session on {format_display_date(session.date)} "
            f"({_format_currency(session.total_cost, config.currency_symbol)})?"
        )
        if not confirmed:
            console.print("Cancelled")
            return

    try:
        state.delete(session.id)
    except StoreError as e:
        console.print(f"[red]Error:[/] could not delete session: {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Deleted session {session.id}")


@app.command()
def stats(
    ctx: typer.Context,
    month: str = _month_option()
):
    """Show total cost, energy, duration and estimated CO2 savings."""
    config: AppConfig = ctx.obj
    state = _load_state(config)
    state.set_filter(_check_month(month))
    summary = state.dashboard().summary

    scope = "all time" if state.month == ALL_MONTHS else state.month
    console.print(f"\n[bold]Charging Summary ({scope})[/bold]")
    console.print("-" * 40)
    console.print(f"Total cost:   {_format_currency(summary.total_cost, config.currency_symbol)}")
    console.print(f"Total energy: {summary.total_energy:.1f} kWh")
    console.print(
        f"Total time:   {summary.duration_hours}s {summary.duration_remainder_minutes}dk"
    )
    console.print(f"CO2 saved:    ~{summary.estimated_co2_saved_kg:.1f} kg\n")


@app.command()
def chart(
    ctx: typer.Context,
    month: str = _month_option()
):
    """Show spending by provider and the monthly or daily cost series."""
    config: AppConfig = ctx.obj
    state = _load_state(config)
    state.set_filter(_check_month(month))
    dashboard = state.dashboard()

    if not dashboard.sessions:
        console.print("\n[dim]No sessions to chart.[/]\n")
        return

    table = Table(title="Total Cost by Provider")
    table.add_column("Provider")
    table.add_column("Cost", justify="right")
    for share in dashboard.distribution:
        table.add_row(
            f"[{share.color}]●[/] {share.provider}",
            _format_currency(share.total_cost, config.currency_symbol)
        )
    console.print(table)

    mode = series_mode_for(dashboard.month)
    title = "Daily Spending" if mode == DAILY else "Monthly Spending"
    console.print(f"\n[bold]{title} ({config.currency_symbol})[/bold]")
    _print_bars(dashboard.series, config)
    console.print()


def _print_bars(series: List[Bucket], config: AppConfig) -> None:
    """Render buckets as horizontal bars scaled to the largest cost."""
    finite = [b.cost for b in series if math.isfinite(b.cost)]
    peak = max(finite) if finite else 0.0
    label_width = max(len(b.label) for b in series)
    for bucket in series:
        length = 0
        if peak > 0 and math.isfinite(bucket.cost):
            length = max(1, round(bucket.cost / peak * config.chart.width)) if bucket.cost > 0 else 0
        bar = "█" * length
        console.print(
            f"{bucket.label:<{label_width}} [green]{bar}[/] "
            f"{_format_currency(bucket.cost, config.currency_symbol)} "
            f"[dim]{bucket.energy:.1f} kWh[/]"
        )


@app.command()
def months(ctx: typer.Context):
    """List months that have sessions, most recent first."""
    config: AppConfig = ctx.obj
    state = _load_state(config)
    available = state.dashboard().available_months
    if not available:
        console.print("[dim]No sessions yet.[/]")
        return
    for month_key in available:
        console.print(month_key)


if __name__ == "__main__":
    app()
