"""Pure functions grouping transactions into per-category currency buckets.

Every category appears in the output with both currencies, even when
nothing matched, so consumers never have to handle a missing key.
"""

from collections import defaultdict
from collections.abc import Iterable

from shopledger.domain.models import (
    Category,
    CategoryLedger,
    Currency,
    CurrencyBucket,
    DateRange,
    Transaction,
)

CategoryBuckets = dict[Category, CategoryLedger]


def filter_by_range(transactions: Iterable[Transaction], date_range: DateRange) -> list[Transaction]:
    """Keep transactions dated within the range, both ends inclusive."""
    return [t for t in transactions if date_range.contains(t.date)]


def group_by_category_currency(
    transactions: Iterable[Transaction],
) -> dict[tuple[Category, Currency], list[Transaction]]:
    """Group transactions by (category, currency) pair."""
    groups: dict[tuple[Category, Currency], list[Transaction]] = defaultdict(list)
    for txn in transactions:
        groups[(txn.category, txn.currency)].append(txn)
    return groups


def empty_ledger(category: Category, available: bool = True) -> CategoryLedger:
    """Ledger entry with zero-valued, empty buckets for both currencies."""
    return CategoryLedger(
        category=category,
        buckets={currency: CurrencyBucket() for currency in Currency},
        available=available,
    )


def aggregate(
    transactions: Iterable[Transaction],
    date_range: DateRange,
    unavailable: Iterable[Category] = (),
) -> CategoryBuckets:
    """Filter transactions to a range and bucket them per category and currency.

    Args:
        transactions: Classified transactions from all sources.
        date_range: Inclusive reporting window.
        unavailable: Categories whose source could not be fetched; they are
            reported as empty buckets flagged ``available=False``.

    Returns:
        Mapping of every Category to its CategoryLedger, in Category order.
    """
    unavailable = set(unavailable)
    groups = group_by_category_currency(filter_by_range(transactions, date_range))

    result: CategoryBuckets = {}
    for category in Category:
        if category in unavailable:
            result[category] = empty_ledger(category, available=False)
            continue
        result[category] = CategoryLedger(
            category=category,
            buckets={
                currency: CurrencyBucket.from_items(groups.get((category, currency), []))
                for currency in Currency
            },
        )
    return result
