"""Tests for shopledger.engine report building."""

import threading
import time
from datetime import date
from decimal import Decimal

import pytest

from shopledger.api import CancellationToken, FetchCancelled
from shopledger.dates import single
from shopledger.domain.models import Category, Currency
from shopledger.engine import FetchPolicy, assemble_report, build_report, build_report_from_records, fetch_all
from shopledger.errors import ReportBuildError, ReportCancelled, SourceFetchFailure

SOURCE_DATA = {
    Category.ORDER_INCOME: [
        {"id": 1, "monto": "500", "fecha": "2024-03-05", "moneda": "Bolivianos", "orden_trabajo": {"id": 10, "cliente": "Ana"}},
        {"id": 2, "monto": "120", "fecha": "2024-03-05T10:00:00.000Z", "moneda": "Dólares"},
        {"id": 3, "monto": "75", "fecha": "2024-03-06", "moneda": "Bs"},
    ],
    Category.DAILY_EXPENSE: [
        {"id": 1, "monto": "80", "fecha": "2024-03-05", "moneda": "Bs", "detalle": "Gasolina"},
        {"id": 2, "monto": "-3", "fecha": "2024-03-05", "moneda": "Bs"},
    ],
    Category.PERSONNEL_PAYMENT: [],
    Category.PAYROLL_ADVANCE: [],
    Category.PAYROLL_PAYMENT: [],
    Category.SUPPLIER_PAYMENT: [],
    Category.FIXED_EXPENSE: [],
    Category.SUPPLY_PURCHASE: [],
}


def static_fetchers(data=SOURCE_DATA):
    return {category: (lambda cancel, records=records: list(records)) for category, records in data.items()}


def failing_fetcher(cancel: CancellationToken) -> list:
    raise ConnectionError("backend down")


class TestFetchPolicy:
    """Tests for FetchPolicy.tolerates."""

    def test_fail_closed_by_default(self) -> None:
        """Should not tolerate any failure by default."""
        assert FetchPolicy().tolerates(0)
        assert not FetchPolicy().tolerates(1)

    def test_partial_with_threshold(self) -> None:
        """Should tolerate failures up to the threshold in partial mode."""
        policy = FetchPolicy(partial=True, max_failed_sources=2)

        assert policy.tolerates(2)
        assert not policy.tolerates(3)
        assert FetchPolicy(partial=True).tolerates(8)


class TestBuildReportFromRecords:
    """Tests for build_report_from_records."""

    def test_single_day_scenario(self) -> None:
        """Should total income, expense and net per currency."""
        report = build_report_from_records({"single": "2024-03-05"}, SOURCE_DATA)

        assert report.total_income == {Currency.BOB: Decimal("500"), Currency.USD: Decimal("120")}
        assert report.total_expense == {Currency.BOB: Decimal("80"), Currency.USD: Decimal("0")}
        assert report.net == {Currency.BOB: Decimal("420"), Currency.USD: Decimal("120")}

    def test_dropped_records_reported(self) -> None:
        """Should list the negative expense as a diagnostic."""
        report = build_report_from_records({"single": "2024-03-05"}, SOURCE_DATA)

        assert [(d.category, d.record_id, d.kind) for d in report.diagnostics] == [
            (Category.DAILY_EXPENSE, "2", "invalid_amount"),
        ]

    def test_idempotent(self) -> None:
        """Should produce equal reports for equal inputs."""
        first = build_report_from_records({"month": "2024-03"}, SOURCE_DATA)
        second = build_report_from_records({"month": "2024-03"}, SOURCE_DATA)

        assert first == second
        assert first.total_income[Currency.BOB] == Decimal("575")

    def test_unicode_digit_ids_do_not_break_ordering(self) -> None:
        """Should total records whose ids are non-ASCII digits."""
        records = {
            Category.DAILY_EXPENSE: [
                {"id": "²", "monto": "10", "fecha": "2024-03-05", "moneda": "Bs"},
                {"id": "3", "monto": "5", "fecha": "2024-03-05", "moneda": "Bs"},
            ]
        }

        report = build_report_from_records({"single": "2024-03-05"}, records)

        assert [t.id for t in report.items(Category.DAILY_EXPENSE, Currency.BOB)] == ["3", "²"]
        assert report.total_expense[Currency.BOB] == Decimal("15")

    def test_relative_date_words_are_dropped(self) -> None:
        """Should report "today" as an invalid date instead of placing it in the current period."""
        records = {Category.DAILY_EXPENSE: [{"id": 1, "monto": "10", "fecha": "today", "moneda": "Bs"}]}

        report = build_report_from_records({"year": date.today().year}, records)

        assert report.total_expense[Currency.BOB] == Decimal("0")
        assert [(d.record_id, d.kind) for d in report.diagnostics] == [("1", "invalid_date")]

    def test_supplier_payment_without_order_is_listed(self) -> None:
        """Should keep a supplier payment with no order in the drill-down at zero."""
        records = {Category.SUPPLIER_PAYMENT: [{"id": 1, "fecha": "2024-03-05", "moneda": "Bs"}]}

        report = build_report_from_records({"single": "2024-03-05"}, records)

        items = report.items(Category.SUPPLIER_PAYMENT, Currency.BOB)
        assert [(t.id, t.amount, t.counterparty) for t in items] == [("1", Decimal("0"), "-")]
        assert report.diagnostics == ()

    def test_missing_sources_are_empty(self) -> None:
        """Should treat sources absent from the mapping as having no records."""
        report = build_report_from_records({"year": 2024}, {})

        assert list(report.categories) == list(Category)
        assert not report.incomplete

    def test_invalid_range_raises_build_error(self) -> None:
        """Should wrap range errors in ReportBuildError."""
        with pytest.raises(ReportBuildError) as exc_info:
            build_report_from_records({"range": {"start": "2024-01-10", "end": "2024-01-01"}}, SOURCE_DATA)

        assert exc_info.value.errors


class TestAssembleReport:
    """Tests for assemble_report."""

    def test_failed_sources_are_skipped(self) -> None:
        """Should not classify records of failed sources."""
        report = assemble_report(single(date(2024, 3, 5)), SOURCE_DATA, failed_sources=[Category.ORDER_INCOME])

        assert report.total_income[Currency.BOB] == Decimal("0")
        assert not report.categories[Category.ORDER_INCOME].available
        assert report.failed_sources == (Category.ORDER_INCOME,)


class TestFetchAll:
    """Tests for fetch_all."""

    def test_collects_records_and_failures(self) -> None:
        """Should keep going when one source fails."""
        fetchers = static_fetchers()
        fetchers[Category.FIXED_EXPENSE] = failing_fetcher

        records, failures = fetch_all(fetchers, CancellationToken())

        assert set(records) == set(Category) - {Category.FIXED_EXPENSE}
        assert isinstance(failures[Category.FIXED_EXPENSE], SourceFetchFailure)
        assert isinstance(failures[Category.FIXED_EXPENSE].cause, ConnectionError)

    def test_missing_fetcher_counts_as_failure(self) -> None:
        """Should flag categories without a fetcher."""
        fetchers = static_fetchers()
        del fetchers[Category.SUPPLY_PURCHASE]

        _, failures = fetch_all(fetchers, CancellationToken())

        assert list(failures) == [Category.SUPPLY_PURCHASE]

    def test_non_list_result_is_failure(self) -> None:
        """Should reject fetchers returning something other than a list."""
        fetchers = static_fetchers()
        fetchers[Category.DAILY_EXPENSE] = lambda cancel: {"oops": True}

        _, failures = fetch_all(fetchers, CancellationToken())

        assert Category.DAILY_EXPENSE in failures

    def test_fetchers_run_concurrently(self) -> None:
        """Should have every fetcher in flight at the same time."""
        barrier = threading.Barrier(len(Category), timeout=5)

        def fetcher(cancel: CancellationToken) -> list:
            barrier.wait()
            return []

        records, failures = fetch_all({c: fetcher for c in Category}, CancellationToken(), timeout=10)

        assert not failures
        assert len(records) == len(Category)


class TestBuildReport:
    """Tests for build_report."""

    def test_builds_from_fetchers(self) -> None:
        """Should match the pure build for the same data."""
        report = build_report({"single": "2024-03-05"}, static_fetchers())

        assert report == build_report_from_records({"single": "2024-03-05"}, SOURCE_DATA)

    def test_fetch_failure_fails_closed(self) -> None:
        """Should raise instead of returning a report by default."""
        fetchers = static_fetchers()
        fetchers[Category.PAYROLL_PAYMENT] = failing_fetcher

        with pytest.raises(ReportBuildError) as exc_info:
            build_report({"single": "2024-03-05"}, fetchers)

        assert [e.category for e in exc_info.value.errors] == [Category.PAYROLL_PAYMENT]

    def test_partial_mode_flags_incomplete(self) -> None:
        """Should report the failed source as unavailable, not as zero activity."""
        fetchers = static_fetchers()
        fetchers[Category.ORDER_INCOME] = failing_fetcher

        report = build_report({"single": "2024-03-05"}, fetchers, policy=FetchPolicy(partial=True))

        assert report.incomplete
        assert report.failed_sources == (Category.ORDER_INCOME,)
        assert not report.categories[Category.ORDER_INCOME].available
        assert report.categories[Category.DAILY_EXPENSE].available
        assert report.total_expense[Currency.BOB] == Decimal("80")

    def test_partial_mode_threshold(self) -> None:
        """Should still fail beyond the tolerated number of failures."""
        fetchers = static_fetchers()
        fetchers[Category.ORDER_INCOME] = failing_fetcher
        fetchers[Category.DAILY_EXPENSE] = failing_fetcher

        with pytest.raises(ReportBuildError):
            build_report(
                {"single": "2024-03-05"},
                fetchers,
                policy=FetchPolicy(partial=True, max_failed_sources=1),
            )

    def test_invalid_selection_raises(self) -> None:
        """Should fail before fetching on a bad window."""
        calls = []
        fetchers = {c: (lambda cancel: calls.append(1) or []) for c in Category}

        with pytest.raises(ReportBuildError):
            build_report({"range": {"start": "2024-01-10", "end": "2024-01-01"}}, fetchers)

        assert calls == []

    def test_timeout_cancels_all_fetches(self) -> None:
        """Should raise ReportCancelled and signal every fetcher."""
        token = CancellationToken()

        def slow(cancel: CancellationToken) -> list:
            cancel.wait(5)
            raise FetchCancelled("slow")

        fetchers = static_fetchers()
        fetchers[Category.SUPPLIER_PAYMENT] = slow

        started = time.monotonic()
        with pytest.raises(ReportCancelled):
            build_report({"single": "2024-03-05"}, fetchers, timeout=0.2, cancel=token)

        assert time.monotonic() - started < 4
        assert token.cancelled

    def test_external_cancel(self) -> None:
        """Should abort when the caller cancels the token."""
        token = CancellationToken()

        def blocking(cancel: CancellationToken) -> list:
            cancel.wait(5)
            return []

        fetchers = static_fetchers()
        fetchers[Category.FIXED_EXPENSE] = blocking

        threading.Timer(0.1, token.cancel).start()
        with pytest.raises(ReportCancelled):
            build_report({"single": "2024-03-05"}, fetchers, cancel=token)

    def test_cancelled_is_build_error(self) -> None:
        """Should let callers catch cancellation as a build error."""
        assert issubclass(ReportCancelled, ReportBuildError)
