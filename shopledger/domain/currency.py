"""Currency label normalization.

Sources spell currencies inconsistently ("Bolivianos", "Bs", "Dólares",
"$us", ...). Every label is mapped to a canonical Currency or rejected;
an unknown label is never guessed as BOB.
"""

import unicodedata

from shopledger.domain.models import Category, Currency
from shopledger.errors import AmbiguousCurrency

_LABELS: dict[str, Currency] = {
    "bob": Currency.BOB,
    "bs": Currency.BOB,
    "bs.": Currency.BOB,
    "boliviano": Currency.BOB,
    "bolivianos": Currency.BOB,
    "usd": Currency.USD,
    "us$": Currency.USD,
    "$us": Currency.USD,
    "$": Currency.USD,
    "sus": Currency.USD,
    "dolar": Currency.USD,
    "dolares": Currency.USD,
}


def fold_label(label: str) -> str:
    """Lowercase, trim and strip accents from a currency label.

    Args:
        label: Raw label, e.g. " Dólares ".

    Returns:
        Folded label, e.g. "dolares".
    """
    decomposed = unicodedata.normalize("NFKD", label.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def lookup_currency(label: str | None) -> Currency | None:
    """Return the canonical currency for a label, or None if unrecognized."""
    if not label:
        return None
    return _LABELS.get(fold_label(str(label)))


def normalize(label: str | None, category: Category, record_id: str | None = None) -> Currency:
    """Normalize a currency label for a record of the given category.

    Args:
        label: Raw currency label (may be None or empty).
        category: Category of the record, supplies the default currency.
        record_id: Source id of the record, used in the error.

    Returns:
        Canonical Currency.

    Raises:
        AmbiguousCurrency: If the label is unrecognized and the category has no default.
    """
    currency = lookup_currency(label)
    if currency is not None:
        return currency
    if category.default_currency is not None:
        return category.default_currency
    shown = label if label else "<empty>"
    raise AmbiguousCurrency(category, record_id, f"Unrecognized currency '{shown}'")
