"""Domain models and pure ledger logic for shopledger.

This package contains the functional core:
- Pure functions with no side effects
- No I/O operations
- Easy to test
- Business logic separated from fetching and display
"""

from shopledger.domain.models import (
    Category,
    CategoryLedger,
    Currency,
    CurrencyBucket,
    DateRange,
    Diagnostic,
    Kind,
    LedgerReport,
    Transaction,
)

__all__ = [
    "Category",
    "CategoryLedger",
    "Currency",
    "CurrencyBucket",
    "DateRange",
    "Diagnostic",
    "Kind",
    "LedgerReport",
    "Transaction",
]
