"""Date utilities for shopledger.

Pure functions turning a reporting-mode selection into an inclusive
calendar range. All values are local calendar dates; there is no time of
day involved anywhere.
"""

import calendar
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from shopledger.domain.models import DateRange, Month
from shopledger.errors import InvalidRange, InvalidSelection

MODES = ("single", "range", "month", "year")


def single(day: date | None) -> DateRange:
    """Range covering exactly one day."""
    if day is None:
        raise InvalidRange("A date is required")
    return DateRange(start=day, end=day)


def explicit_range(start: date | None, end: date | None) -> DateRange:
    """Range between two dates, both inclusive.

    Raises:
        InvalidRange: If a bound is missing or end is before start.
    """
    if start is None or end is None:
        raise InvalidRange("Both start and end dates are required")
    if end < start:
        raise InvalidRange(f"End date {end.isoformat()} is before start date {start.isoformat()}")
    return DateRange(start=start, end=end)


def month(year: int, month_index: int) -> DateRange:
    """Range from the first to the last calendar day of a month.

    Args:
        year: Four-digit year.
        month_index: Month number, 1-12.

    Returns:
        DateRange whose end accounts for month length and leap years.

    Raises:
        InvalidRange: If the month number is out of range.
    """
    if not 1 <= year <= 9999:
        raise InvalidRange(f"Year out of range: {year}")
    if not 1 <= month_index <= 12:
        raise InvalidRange(f"Month must be between 1 and 12, got {month_index}")
    last_day = calendar.monthrange(year, month_index)[1]
    return DateRange(start=date(year, month_index, 1), end=date(year, month_index, last_day))


def year(year: int) -> DateRange:
    """Range from Jan 1 to Dec 31."""
    if not 1 <= year <= 9999:
        raise InvalidRange(f"Year out of range: {year}")
    return DateRange(start=date(year, 1, 1), end=date(year, 12, 31))


def month_from_string(value: Month) -> DateRange:
    """Range for a month in YYYY-MM format."""
    try:
        dt = datetime.strptime(value, "%Y-%m")
    except ValueError as e:
        raise InvalidSelection(f"Invalid month '{value}', expected YYYY-MM") from e
    return month(dt.year, dt.month)


@dataclass(frozen=True)
class Selection:
    """A validated reporting-mode selection."""

    mode: str
    value: Any

    def resolve(self) -> DateRange:
        """Resolve the selection to its inclusive date range."""
        if self.mode == "single":
            return single(self.value)
        if self.mode == "range":
            start, end = self.value
            return explicit_range(start, end)
        if self.mode == "month":
            year_value, month_value = self.value
            return month(year_value, month_value)
        return year(self.value)


def _to_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise InvalidSelection(f"Invalid {field} date '{value}'") from e


def _to_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidSelection(f"Invalid {field} '{value}'") from e


def parse_selection(raw: Mapping[str, Any]) -> Selection:
    """Validate a selection mapping from a caller.

    Accepts exactly one of ``{"single": date}``, ``{"range": {"start", "end"}}``,
    ``{"month": {"year", "month"}}`` (or ``{"month": "YYYY-MM"}``) and
    ``{"year": year}``. Dates may be date objects or ISO strings.

    Args:
        raw: Selection mapping.

    Returns:
        Selection ready to resolve.

    Raises:
        InvalidSelection: If zero or several modes are given or values are malformed.
    """
    modes = [m for m in MODES if raw.get(m) is not None]
    unknown = sorted(set(raw) - set(MODES))
    if unknown:
        raise InvalidSelection(f"Unknown selection keys: {', '.join(unknown)}")
    if len(modes) != 1:
        raise InvalidSelection(f"Exactly one of {', '.join(MODES)} is required, got {len(modes)}")

    mode = modes[0]
    value = raw[mode]

    if mode == "single":
        return Selection(mode, _to_date(value, "single"))

    if mode == "range":
        if not isinstance(value, Mapping):
            raise InvalidSelection("Range selection needs start and end")
        return Selection(mode, (_to_date(value.get("start"), "start"), _to_date(value.get("end"), "end")))

    if mode == "month":
        if isinstance(value, str):
            resolved = month_from_string(Month(value))
            return Selection(mode, (resolved.start.year, resolved.start.month))
        if not isinstance(value, Mapping):
            raise InvalidSelection("Month selection needs year and month")
        return Selection(mode, (_to_int(value.get("year"), "year"), _to_int(value.get("month"), "month")))

    return Selection(mode, _to_int(value, "year"))


def resolve(raw: Mapping[str, Any] | Selection) -> DateRange:
    """Resolve a selection (mapping or Selection) to a DateRange.

    Raises:
        InvalidRange: If the selection or the resulting range is invalid.
    """
    selection = raw if isinstance(raw, Selection) else parse_selection(raw)
    return selection.resolve()
