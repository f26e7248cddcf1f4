"""Tests for shopledger.api fetchers."""

from unittest.mock import MagicMock

import pytest
import requests

from shopledger.api import CancellationToken, FetchCancelled, get_records, make_fetcher, make_fetchers, unwrap_records
from shopledger.config import Settings
from shopledger.domain.models import Category


def mock_session(payload: object, status_error: Exception | None = None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    session = MagicMock(spec=requests.Session)
    session.get.return_value = response
    return session


class TestUnwrapRecords:
    """Tests for unwrap_records."""

    def test_bare_list(self) -> None:
        """Should accept a bare list."""
        assert unwrap_records([{"id": 1}]) == [{"id": 1}]

    def test_wrapped_list(self) -> None:
        """Should unwrap {"data": [...]} bodies."""
        assert unwrap_records({"data": [{"id": 1}]}) == [{"id": 1}]

    def test_non_list_raises(self) -> None:
        """Should reject bodies without a record list."""
        with pytest.raises(ValueError):
            unwrap_records({"message": "error"})


class TestGetRecords:
    """Tests for get_records."""

    def test_sends_token_and_timeout(self) -> None:
        """Should authenticate and bound the request."""
        session = mock_session([{"id": 1}])

        result = get_records(session, "http://shop/api/egresos", "secret", 12.0, CancellationToken())

        assert result == [{"id": 1}]
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 12.0

    def test_no_token_header_without_token(self) -> None:
        """Should omit Authorization when no token is set."""
        session = mock_session([])

        get_records(session, "http://shop/api/egresos", None, 5.0, CancellationToken())

        _, kwargs = session.get.call_args
        assert "Authorization" not in kwargs["headers"]

    def test_cancelled_before_request(self) -> None:
        """Should not hit the network once cancelled."""
        session = mock_session([])
        token = CancellationToken()
        token.cancel()

        with pytest.raises(FetchCancelled):
            get_records(session, "http://shop/api/egresos", None, 5.0, token)

        session.get.assert_not_called()

    def test_http_error_propagates(self) -> None:
        """Should surface HTTP failures to the caller."""
        session = mock_session([], status_error=requests.HTTPError("500 Server Error"))

        with pytest.raises(requests.HTTPError):
            get_records(session, "http://shop/api/egresos", None, 5.0, CancellationToken())


class TestMakeFetchers:
    """Tests for make_fetcher and make_fetchers."""

    def test_fetcher_uses_category_endpoint(self) -> None:
        """Should call the configured resource for the category."""
        session = mock_session({"data": [{"id": 5}]})
        settings = Settings(base_url="http://shop/api")

        fetch = make_fetcher(Category.DAILY_EXPENSE, settings, session=session)

        assert fetch(CancellationToken()) == [{"id": 5}]
        args, _ = session.get.call_args
        assert args[0] == "http://shop/api/egresos"

    def test_one_fetcher_per_category(self) -> None:
        """Should cover all categories."""
        fetchers = make_fetchers(Settings(base_url="http://shop/api"), session=mock_session([]))

        assert set(fetchers) == set(Category)
