"""Shop backend API interactions: one fetcher per ledger source."""

import threading
from collections.abc import Callable
from typing import Any

import requests

from shopledger.config import Settings
from shopledger.domain.models import Category, RawRecord
from shopledger.logging_setup import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Cancellation flag shared by every branch of one report build."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


class FetchCancelled(Exception):
    """Raised inside a fetcher that noticed its token was cancelled."""
    pass


# A source fetcher returns the raw records of one source
SourceFetcher = Callable[[CancellationToken], list[RawRecord]]


def unwrap_records(payload: Any) -> list[RawRecord]:
    """Extract the record list from a response body.

    Some resources return a bare list, others wrap it as ``{"data": [...]}``.

    Raises:
        ValueError: If the body holds no record list.
    """
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of records, got {type(payload).__name__}")
    return payload


def get_records(
    session: requests.Session,
    url: str,
    token: str | None,
    timeout: float,
    cancel: CancellationToken,
) -> list[RawRecord]:
    """Fetch the records of one resource.

    Args:
        session: HTTP session.
        url: Full resource URL.
        token: Optional bearer token.
        timeout: Per-request timeout in seconds.
        cancel: Shared cancellation token.

    Returns:
        List of raw record dictionaries.

    Raises:
        requests.RequestException: If the API request fails.
        ValueError: If the response body is not a record list.
        FetchCancelled: If the build was cancelled.
    """
    if cancel.cancelled:
        raise FetchCancelled(url)

    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    response = session.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()

    if cancel.cancelled:
        raise FetchCancelled(url)

    return unwrap_records(response.json())


def make_fetcher(
    category: Category,
    settings: Settings,
    token: str | None = None,
    session: requests.Session | None = None,
) -> SourceFetcher:
    """Build the fetcher for one category's resource."""
    url = settings.base_url + settings.endpoints[category]
    http = session or requests.Session()

    def fetch(cancel: CancellationToken) -> list[RawRecord]:
        logger.debug("GET %s", url)
        records = get_records(http, url, token, settings.timeout, cancel)
        logger.debug("%s returned %d records", category.value, len(records))
        return records

    return fetch


def make_fetchers(
    settings: Settings,
    token: str | None = None,
    session: requests.Session | None = None,
) -> dict[Category, SourceFetcher]:
    """Build fetchers for all categories sharing one session."""
    http = session or requests.Session()
    return {category: make_fetcher(category, settings, token, http) for category in Category}
