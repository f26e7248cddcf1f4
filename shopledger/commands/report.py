"""Report and inspect commands for viewing the ledger."""

import sys
from datetime import date
from decimal import Decimal
from typing import Any

import requests
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shopledger.api import make_fetchers
from shopledger.config import Settings, get_token, load_settings
from shopledger.domain.models import Category, Currency, Kind, LedgerReport
from shopledger.engine import FetchPolicy, build_report
from shopledger.errors import ConfigurationError, LedgerError, ReportBuildError

console = Console()


def format_money(amount: Decimal, currency: Currency) -> str:
    """Format an amount with its currency symbol, e.g. "Bs 1,250.00"."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency.symbol} {abs(amount):,.2f}"


def compute_selection(
    day: str | None,
    start: str | None,
    end: str | None,
    month: str | None,
    year: int | None,
) -> dict[str, Any]:
    """Build a selection mapping from command-line options.

    Defaults to the current month when no option is given.
    """
    selection: dict[str, Any] = {}
    if day:
        selection["single"] = day
    if start or end:
        selection["range"] = {"start": start, "end": end}
    if month:
        selection["month"] = month
    if year is not None:
        selection["year"] = year
    if not selection:
        today = date.today()
        selection["month"] = {"year": today.year, "month": today.month}
    return selection


def load_settings_or_exit() -> Settings:
    """Load settings, printing a hint and exiting on failure."""
    try:
        return load_settings()
    except FileNotFoundError:
        console.print("[red]Config file not found. Run 'shopledger init' first.[/red]", style="bold")
        sys.exit(1)
    except ConfigurationError as e:
        console.print(f"[red]Config error: {e}[/red]", style="bold")
        sys.exit(1)


def fetch_report(selection: dict[str, Any], partial: bool | None, timeout: float | None) -> LedgerReport:
    """Fetch sources and build the report, exiting on failure."""
    settings = load_settings_or_exit()
    policy = FetchPolicy(
        partial=settings.partial if partial is None else partial,
        max_failed_sources=settings.max_failed_sources,
    )
    fetchers = make_fetchers(settings, get_token())

    try:
        return build_report(
            selection,
            fetchers,
            policy=policy,
            timeout=timeout if timeout is not None else settings.report_timeout,
        )
    except ReportBuildError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        for error in e.errors:
            console.print(f"  [dim]• {escape(str(error))}[/dim]")
        sys.exit(1)
    except LedgerError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)
    except requests.RequestException as e:
        console.print(f"[red]API error: {e}[/red]", style="bold")
        sys.exit(1)


def render_ledger_table(report: LedgerReport) -> Table:
    """Build the category table with one column per currency."""
    table = Table(title=f"Utilidades - {report.range.label}")
    table.add_column("Category", style="white")
    table.add_column("Bs", justify="right")
    table.add_column("$us", justify="right")
    table.add_column("Items", style="dim", justify="right")

    for category, ledger in report.categories.items():
        if not ledger.available:
            table.add_row(category.label, "[yellow]unavailable[/yellow]", "[yellow]unavailable[/yellow]", "-")
            continue
        style = "green" if category.kind is Kind.INCOME else "red"
        bob = ledger.bucket(Currency.BOB)
        usd = ledger.bucket(Currency.USD)
        table.add_row(
            category.label,
            f"[{style}]{format_money(bob.total, Currency.BOB)}[/{style}]",
            f"[{style}]{format_money(usd.total, Currency.USD)}[/{style}]",
            str(len(bob.items) + len(usd.items)),
        )

    return table


def render_totals(report: LedgerReport) -> None:
    """Print income, expense and net lines for both currencies."""
    rows = [
        ("Total income", report.total_income, "green"),
        ("Total expense", report.total_expense, "red"),
    ]
    for label, totals, style in rows:
        amounts = "   ".join(format_money(totals[c], c) for c in Currency)
        console.print(f"  [bold]{label}:[/bold] [{style}]{amounts}[/{style}]")

    net_parts = []
    for currency in Currency:
        value = report.net[currency]
        style = "red" if value < 0 else "green"
        net_parts.append(f"[{style}]{format_money(value, currency)}[/{style}]")
    console.print(f"\n[bold cyan]Net:[/bold cyan] {'   '.join(net_parts)}")


def render_diagnostics(report: LedgerReport) -> None:
    """Print dropped records and missing sources."""
    if report.incomplete:
        missing = ", ".join(c.label for c in report.failed_sources)
        console.print(f"\n[yellow]Incomplete report: could not fetch {missing}[/yellow]", style="bold")

    if report.diagnostics:
        console.print(f"\n[yellow]{len(report.diagnostics)} record(s) dropped:[/yellow]")
        for diag in report.diagnostics:
            console.print(f"  • {diag.category.label} #{diag.record_id or '?'}: {escape(diag.message)} [dim]({diag.kind})[/dim]")


def report_command(
    day: str | None = None,
    start: str | None = None,
    end: str | None = None,
    month: str | None = None,
    year: int | None = None,
    partial: bool | None = None,
    timeout: float | None = None,
) -> None:
    """Generate the income and expense ledger for a period."""
    selection = compute_selection(day, start, end, month, year)
    report = fetch_report(selection, partial, timeout)

    console.print(render_ledger_table(report))
    console.print()
    render_totals(report)
    render_diagnostics(report)


def inspect_command(
    category: str,
    currency: str = "BOB",
    day: str | None = None,
    start: str | None = None,
    end: str | None = None,
    month: str | None = None,
    year: int | None = None,
) -> None:
    """Show the transactions behind one category total."""
    try:
        category_typed = Category.parse(category)
        currency_typed = Currency(currency.upper())
    except ValueError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    selection = compute_selection(day, start, end, month, year)
    report = fetch_report(selection, partial=False, timeout=None)
    bucket = report.bucket(category_typed, currency_typed)

    if not bucket.items:
        console.print(f"[yellow]No transactions for {category_typed.label} in {currency_typed.symbol}[/yellow]")
        return

    table = Table(title=f"{category_typed.label} ({currency_typed.symbol}) - {report.range.label}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Date", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Counterparty")
    table.add_column("Payment", style="dim")
    table.add_column("Document", style="dim")
    table.add_column("Amount", justify="right")

    for txn in bucket.items:
        table.add_row(
            txn.id,
            txn.date.isoformat(),
            escape(txn.description),
            escape(txn.counterparty),
            escape(txn.payment_method),
            escape(txn.document_ref),
            format_money(txn.amount, txn.currency),
        )

    console.print(table)
    console.print(f"\n[bold]Total:[/bold] {format_money(bucket.total, currency_typed)}")
