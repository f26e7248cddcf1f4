"""CLI entry point for shopledger."""

import typer

from shopledger.commands.admin import init_command
from shopledger.commands.report import inspect_command, report_command
from shopledger.logging_setup import configure_logging

app = typer.Typer(
    name="shopledger",
    help="Income and expense ledger for the workshop back office",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Income and expense ledger for the workshop back office."""
    configure_logging("DEBUG" if verbose else None)


@app.command(name="init")
def init(
    base_url: str = typer.Option("http://localhost:3000/api", "--base-url", help="Shop backend API root"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
) -> None:
    """Initialize shopledger configuration."""
    init_command(base_url, force)


@app.command()
def report(
    day: str = typer.Option(None, "--date", "-d", help="Single day (YYYY-MM-DD)"),
    start: str = typer.Option(None, "--from", help="Range start (YYYY-MM-DD)"),
    end: str = typer.Option(None, "--to", help="Range end (YYYY-MM-DD)"),
    month: str = typer.Option(None, "--month", "-m", help="Month (YYYY-MM), default: current month"),
    year: int = typer.Option(None, "--year", "-y", help="Whole year"),
    partial: bool = typer.Option(None, "--partial/--strict", help="Report unavailable sources instead of failing"),
    timeout: float = typer.Option(None, "--timeout", help="Overall fetch deadline in seconds"),
) -> None:
    """Show income, expenses and net result per currency."""
    report_command(day, start, end, month, year, partial, timeout)


@app.command()
def inspect(
    category: str,
    currency: str = typer.Option("BOB", "--currency", "-c", help="BOB or USD"),
    day: str = typer.Option(None, "--date", "-d", help="Single day (YYYY-MM-DD)"),
    start: str = typer.Option(None, "--from", help="Range start (YYYY-MM-DD)"),
    end: str = typer.Option(None, "--to", help="Range end (YYYY-MM-DD)"),
    month: str = typer.Option(None, "--month", "-m", help="Month (YYYY-MM), default: current month"),
    year: int = typer.Option(None, "--year", "-y", help="Whole year"),
) -> None:
    """Show the transactions behind a category total."""
    inspect_command(category, currency, day, start, end, month, year)


if __name__ == "__main__":
    app()
