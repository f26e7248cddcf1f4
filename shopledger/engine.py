"""Report facade: resolve the window, fetch every source, build the ledger.

Fetching is a scatter/gather over a thread pool with one worker per
source. Classification and aggregation only start after every branch has
returned or failed, and a cancelled or timed-out build never yields a
report.
"""

import time
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

from shopledger.api import CancellationToken, FetchCancelled, SourceFetcher
from shopledger.dates import Selection, resolve
from shopledger.domain.aggregate import aggregate
from shopledger.domain.classifiers import classify_records
from shopledger.domain.models import Category, DateRange, Diagnostic, LedgerReport, RawRecord, Transaction
from shopledger.domain.report import create_ledger_report
from shopledger.errors import InvalidRange, ReportBuildError, ReportCancelled, SourceFetchFailure
from shopledger.logging_setup import get_logger

logger = get_logger(__name__)

# How often the gather loop checks for an external cancellation
POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class FetchPolicy:
    """How source fetch failures are handled.

    partial: report failed sources as unavailable instead of failing the build.
    max_failed_sources: in partial mode, the most failures still tolerated
        (None for no limit).
    """

    partial: bool = False
    max_failed_sources: int | None = None

    def tolerates(self, failures: int) -> bool:
        if failures == 0:
            return True
        if not self.partial:
            return False
        return self.max_failed_sources is None or failures <= self.max_failed_sources


def classify_sources(
    records: Mapping[Category, Sequence[RawRecord]],
    skip: Iterable[Category] = (),
) -> tuple[list[Transaction], list[Diagnostic]]:
    """Classify every source's records into one flat transaction list."""
    skipped = set(skip)
    transactions: list[Transaction] = []
    diagnostics: list[Diagnostic] = []

    for category in Category:
        if category in skipped:
            continue
        txns, diags = classify_records(category, records.get(category, ()))
        transactions.extend(txns)
        diagnostics.extend(diags)

    for diag in diagnostics:
        logger.warning("Dropped %s record %s: %s", diag.category.value, diag.record_id or "?", diag.message)

    return transactions, diagnostics


def assemble_report(
    date_range: DateRange,
    records: Mapping[Category, Sequence[RawRecord]],
    failed_sources: Iterable[Category] = (),
) -> LedgerReport:
    """Build a ledger from already-fetched records.

    Args:
        date_range: Resolved reporting window.
        records: Raw records per category.
        failed_sources: Categories whose fetch failed; reported as unavailable.

    Returns:
        LedgerReport for the window.
    """
    failed = tuple(failed_sources)
    transactions, diagnostics = classify_sources(records, skip=failed)
    categories = aggregate(transactions, date_range, unavailable=failed)
    report = create_ledger_report(date_range, categories, diagnostics, failed)

    logger.info(
        "Report %s: income %s, expense %s, net %s",
        date_range.label,
        {c.value: str(v) for c, v in report.total_income.items()},
        {c.value: str(v) for c, v in report.total_expense.items()},
        {c.value: str(v) for c, v in report.net.items()},
    )
    return report


def build_report_from_records(
    selection: Mapping[str, Any] | Selection,
    records: Mapping[Category, Sequence[RawRecord]],
) -> LedgerReport:
    """Pure report build over fixed source data.

    Raises:
        ReportBuildError: If the selection cannot be resolved.
    """
    return assemble_report(_resolve(selection), records)


def _resolve(selection: Mapping[str, Any] | Selection) -> DateRange:
    try:
        date_range = resolve(selection)
    except InvalidRange as e:
        raise ReportBuildError(f"Invalid reporting window: {e}", [e]) from e
    logger.debug("Resolved window %s to %s", selection, date_range)
    return date_range


def _collect(
    future: Future,
    category: Category,
    records: dict[Category, list[RawRecord]],
    failures: dict[Category, SourceFetchFailure],
) -> None:
    try:
        result = future.result()
    except FetchCancelled as e:
        raise ReportCancelled("Report build cancelled") from e
    except Exception as e:
        logger.warning("Fetching %s failed: %s", category.value, e)
        failures[category] = SourceFetchFailure(category, e)
        return
    if not isinstance(result, list):
        failures[category] = SourceFetchFailure(category, f"expected a list, got {type(result).__name__}")
        return
    logger.debug("Fetched %d %s record(s)", len(result), category.value)
    records[category] = result


def fetch_all(
    fetchers: Mapping[Category, SourceFetcher],
    cancel: CancellationToken,
    timeout: float | None = None,
) -> tuple[dict[Category, list[RawRecord]], dict[Category, SourceFetchFailure]]:
    """Run every source fetcher concurrently and wait for all of them.

    Args:
        fetchers: One fetcher per category; missing categories count as failed.
        cancel: Token shared with every fetcher.
        timeout: Overall deadline in seconds, or None.

    Returns:
        Tuple of (records per category, failures per category).

    Raises:
        ReportCancelled: If the token is cancelled or the deadline passes.
    """
    records: dict[Category, list[RawRecord]] = {}
    failures: dict[Category, SourceFetchFailure] = {}

    for category in Category:
        if category not in fetchers:
            failures[category] = SourceFetchFailure(category, "no fetcher configured")

    deadline = time.monotonic() + timeout if timeout is not None else None
    executor = ThreadPoolExecutor(max_workers=len(Category), thread_name_prefix="shopledger-fetch")
    try:
        logger.debug("Fetching %d source(s)", len(fetchers))
        futures = {
            executor.submit(fetchers[category], cancel): category for category in Category if category in fetchers
        }
        pending = set(futures)
        while pending:
            if cancel.cancelled:
                raise ReportCancelled("Report build cancelled")
            wait_for = POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    cancel.cancel()
                    raise ReportCancelled(f"Report build timed out after {timeout}s")
                wait_for = min(wait_for, remaining)

            done, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
            for future in done:
                _collect(future, futures[future], records, failures)
        if cancel.cancelled:
            raise ReportCancelled("Report build cancelled")
    except ReportCancelled:
        cancel.cancel()
        raise
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return records, failures


def build_report(
    selection: Mapping[str, Any] | Selection,
    fetchers: Mapping[Category, SourceFetcher],
    policy: FetchPolicy | None = None,
    timeout: float | None = None,
    cancel: CancellationToken | None = None,
) -> LedgerReport:
    """Build the ledger report for a selection.

    Args:
        selection: Reporting-mode selection (see shopledger.dates.parse_selection).
        fetchers: Source fetcher per category.
        policy: Failure policy; fail-closed by default.
        timeout: Overall deadline in seconds for all fetches.
        cancel: Token the caller can set to abort the build.

    Returns:
        Fully populated LedgerReport.

    Raises:
        ReportBuildError: If the window is invalid or too many sources fail.
        ReportCancelled: If cancelled or timed out; no partial report is returned.
    """
    policy = policy or FetchPolicy()
    date_range = _resolve(selection)
    cancel = cancel or CancellationToken()

    records, failures = fetch_all(fetchers, cancel, timeout)

    if not policy.tolerates(len(failures)):
        names = ", ".join(c.value for c in Category if c in failures)
        raise ReportBuildError(f"{len(failures)} source(s) failed to fetch: {names}", list(failures.values()))

    if failures:
        logger.warning("Building incomplete report without: %s", ", ".join(c.value for c in failures))

    return assemble_report(date_range, records, failed_sources=failures)
