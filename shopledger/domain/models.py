"""Domain types for shopledger.

These types form the canonical ledger model every source is normalized into:
- Currency: the two canonical currency codes (BOB, USD)
- Kind: whether a category adds to income or to expense
- Category: the eight fixed transaction classifications
- Transaction: one normalized money movement
- CurrencyBucket / CategoryLedger / LedgerReport: aggregated report values

Amounts are Decimal magnitudes; the sign is implied by the category kind.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, NewType

# Source-local record identifier, unique only within its source
RecordId = NewType("RecordId", str)

# Month is always in YYYY-MM format (e.g., "2024-03")
Month = NewType("Month", str)

# Raw record as returned by a source fetcher (decoded JSON object)
RawRecord = Mapping[str, Any]

ZERO = Decimal("0")


class Currency(str, Enum):
    """Canonical currency codes. Amounts are never converted between them."""

    BOB = "BOB"
    USD = "USD"

    @property
    def symbol(self) -> str:
        return "Bs" if self is Currency.BOB else "$us"


class Kind(str, Enum):
    """Direction of a category's money movement."""

    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """Fixed transaction classifications, one per data source.

    Member order is the display order used by reports.
    """

    ORDER_INCOME = "order_income"
    DAILY_EXPENSE = "daily_expense"
    SUPPLY_PURCHASE = "supply_purchase"
    PAYROLL_PAYMENT = "payroll_payment"
    PAYROLL_ADVANCE = "payroll_advance"
    PERSONNEL_PAYMENT = "personnel_payment"
    SUPPLIER_PAYMENT = "supplier_payment"
    FIXED_EXPENSE = "fixed_expense"

    @property
    def kind(self) -> Kind:
        return _CATEGORY_SPECS[self][0]

    @property
    def default_currency(self) -> Currency | None:
        return _CATEGORY_SPECS[self][1]

    @property
    def label(self) -> str:
        return _CATEGORY_SPECS[self][2]

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Look up a category by value, member name or label (case-insensitive).

        Args:
            value: e.g. "order_income", "ORDER_INCOME", "order-income" or "Sueldos".

        Returns:
            Matching Category.

        Raises:
            ValueError: If nothing matches.
        """
        key = value.strip().lower().replace("-", "_")
        for category in cls:
            if key in (category.value, category.name.lower(), category.label.lower()):
                return category
        raise ValueError(f"Unknown category '{value}'")


# kind, default currency, display label
_CATEGORY_SPECS: dict[Category, tuple[Kind, Currency | None, str]] = {
    Category.ORDER_INCOME: (Kind.INCOME, None, "Ingresos por Órdenes"),
    Category.DAILY_EXPENSE: (Kind.EXPENSE, None, "Egresos Diarios"),
    Category.SUPPLY_PURCHASE: (Kind.EXPENSE, None, "Compra de Insumos"),
    Category.PAYROLL_PAYMENT: (Kind.EXPENSE, Currency.BOB, "Sueldos"),
    Category.PAYROLL_ADVANCE: (Kind.EXPENSE, Currency.BOB, "Adelantos"),
    Category.PERSONNEL_PAYMENT: (Kind.EXPENSE, Currency.BOB, "Otros Pagos Personal"),
    Category.SUPPLIER_PAYMENT: (Kind.EXPENSE, None, "Pagos a Proveedores"),
    Category.FIXED_EXPENSE: (Kind.EXPENSE, None, "Gastos Fijos"),
}


@dataclass(frozen=True)
class Transaction:
    """Immutable canonical transaction."""

    id: RecordId
    date: date
    amount: Decimal
    currency: Currency
    category: Category
    description: str = ""
    counterparty: str = "-"
    payment_method: str = "-"
    document_ref: str = "-"
    destination: str = "-"
    note: str = ""

    def sort_key(self) -> tuple[date, int, int | str]:
        """Chronological key with a deterministic tie-break on source id."""
        if self.id.isascii() and self.id.isdecimal():
            return self.date, 0, int(self.id)
        return self.date, 1, self.id


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar interval. Built by shopledger.dates only."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def label(self) -> str:
        """Human-readable period, e.g. "March 2024" or "2024"."""
        if self.start == self.end:
            return self.start.isoformat()
        if self.start.day == 1 and self.start.month == 1 and self.end == date(self.start.year, 12, 31):
            return str(self.start.year)
        if self.start.day == 1 and self.start.year == self.end.year and self.start.month == self.end.month:
            next_day = date.fromordinal(self.end.toordinal() + 1)
            if next_day.day == 1:
                return self.start.strftime("%B %Y")
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


@dataclass(frozen=True)
class CurrencyBucket:
    """Transactions of one (category, currency) pair and their exact total.

    Use ``from_items``; the total is always recomputed from the items.
    """

    total: Decimal = ZERO
    items: tuple[Transaction, ...] = ()

    @classmethod
    def from_items(cls, items: list[Transaction] | tuple[Transaction, ...]) -> "CurrencyBucket":
        ordered = tuple(sorted(items, key=Transaction.sort_key))
        return cls(total=sum((t.amount for t in ordered), ZERO), items=ordered)


@dataclass(frozen=True)
class CategoryLedger:
    """Both currency buckets for a category.

    ``available`` is False when the category's source could not be fetched,
    which is different from an empty bucket.
    """

    category: Category
    buckets: Mapping[Currency, CurrencyBucket]
    available: bool = True

    def bucket(self, currency: Currency) -> CurrencyBucket:
        return self.buckets[currency]


@dataclass(frozen=True)
class Diagnostic:
    """A raw record that was dropped during classification."""

    category: Category
    record_id: str | None
    kind: str
    message: str


@dataclass(frozen=True)
class LedgerReport:
    """Immutable full ledger for a reporting window."""

    range: DateRange
    categories: Mapping[Category, CategoryLedger]
    total_income: Mapping[Currency, Decimal]
    total_expense: Mapping[Currency, Decimal]
    net: Mapping[Currency, Decimal]
    diagnostics: tuple[Diagnostic, ...] = ()
    failed_sources: tuple[Category, ...] = ()

    @property
    def incomplete(self) -> bool:
        return bool(self.failed_sources)

    def bucket(self, category: Category, currency: Currency) -> CurrencyBucket:
        """Return the bucket backing a displayed total."""
        return self.categories[category].bucket(currency)

    def items(self, category: Category, currency: Currency) -> tuple[Transaction, ...]:
        """Drill-down list for a category and currency."""
        return self.bucket(category, currency).items
