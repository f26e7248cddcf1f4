"""Pure functions for ledger totals.

This module contains the functional core for reporting operations:
- No I/O operations
- No side effects
- Currencies are summed independently and never converted

Totals are always derived from bucket totals, which are in turn derived
from bucket items, so every figure can be traced back to transactions.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from shopledger.domain.models import (
    ZERO,
    Category,
    CategoryLedger,
    Currency,
    DateRange,
    Diagnostic,
    Kind,
    LedgerReport,
)


@dataclass(frozen=True)
class LedgerSummary:
    """Immutable income, expense and net totals per currency."""

    total_income: dict[Currency, Decimal]
    total_expense: dict[Currency, Decimal]
    net: dict[Currency, Decimal]


def calculate_kind_total(
    categories: Mapping[Category, CategoryLedger],
    kind: Kind,
    currency: Currency,
) -> Decimal:
    """Sum bucket totals of every category of a kind at one currency.

    Args:
        categories: Category ledgers from the aggregator.
        kind: Income or expense.
        currency: Currency to sum.

    Returns:
        Exact Decimal total.
    """
    return sum(
        (ledger.bucket(currency).total for category, ledger in categories.items() if category.kind is kind),
        ZERO,
    )


def calculate_net(total_income: Decimal, total_expense: Decimal) -> Decimal:
    """Net result; negative values are a valid loss, not an error."""
    return total_income - total_expense


def summarize(categories: Mapping[Category, CategoryLedger]) -> LedgerSummary:
    """Build income, expense and net totals for both currencies.

    Args:
        categories: Category ledgers from the aggregator.

    Returns:
        LedgerSummary with one independent total per currency.
    """
    income = {c: calculate_kind_total(categories, Kind.INCOME, c) for c in Currency}
    expense = {c: calculate_kind_total(categories, Kind.EXPENSE, c) for c in Currency}
    net = {c: calculate_net(income[c], expense[c]) for c in Currency}
    return LedgerSummary(total_income=income, total_expense=expense, net=net)


def create_ledger_report(
    date_range: DateRange,
    categories: Mapping[Category, CategoryLedger],
    diagnostics: Iterable[Diagnostic] = (),
    failed_sources: Iterable[Category] = (),
) -> LedgerReport:
    """Create the full ledger report for a reporting window.

    Args:
        date_range: Resolved reporting window.
        categories: Category ledgers from the aggregator.
        diagnostics: Records dropped during classification.
        failed_sources: Categories whose source fetch failed (partial mode).

    Returns:
        LedgerReport with totals, net and drill-down buckets.
    """
    summary = summarize(categories)
    failed = set(failed_sources)
    return LedgerReport(
        range=date_range,
        categories=dict(categories),
        total_income=summary.total_income,
        total_expense=summary.total_expense,
        net=summary.net,
        diagnostics=tuple(diagnostics),
        failed_sources=tuple(c for c in Category if c in failed),
    )
