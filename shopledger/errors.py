"""Exceptions for shopledger."""

from shopledger.domain.models import Category


class LedgerError(Exception):
    """Base exception for ledger errors"""
    pass


class ConfigurationError(LedgerError):
    """Configuration loading errors"""
    pass


class InvalidRange(LedgerError, ValueError):
    """Reporting window with a missing bound or end before start"""
    pass


class InvalidSelection(InvalidRange):
    """Selection input that is not exactly one valid reporting mode"""
    pass


class ClassificationError(LedgerError):
    """A raw record that cannot become a Transaction"""

    kind = "classification"

    def __init__(self, category: Category, record_id: str | None, message: str):
        super().__init__(message)
        self.category = category
        self.record_id = record_id
        self.message = message


class InvalidAmount(ClassificationError):
    """Negative, missing or non-numeric amount"""

    kind = "invalid_amount"


class InvalidDate(ClassificationError):
    """Missing or unparseable occurrence date"""

    kind = "invalid_date"


class AmbiguousCurrency(ClassificationError):
    """Unrecognized currency label for a category without a default"""

    kind = "ambiguous_currency"


class SourceFetchFailure(LedgerError):
    """A source's fetch call failed"""

    def __init__(self, category: Category, cause: BaseException | str):
        super().__init__(f"Fetching {category.value} failed: {cause}")
        self.category = category
        self.cause = cause


class ReportBuildError(LedgerError):
    """Report could not be built; wraps the underlying errors"""

    def __init__(self, message: str, errors: list[Exception] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


class ReportCancelled(ReportBuildError):
    """Report build cancelled or timed out before all sources returned"""
    pass
