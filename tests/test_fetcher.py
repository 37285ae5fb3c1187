"""Tests for fetcher.py."""

import httpx

from errors import EmptyResponseError
from fetcher import FetchFailure, FetchSuccess, fetch, is_gone, require_ok

URL = "https://example.com/disco/server_list.json"


class TestFetch:
    """Tests for fetch()."""

    def test_success_returns_status_and_body(self, httpx_mock):
        """A 200 response is returned with its raw body."""
        httpx_mock.add_response(url=URL, content=b'{"server_list": []}')

        result = fetch(URL)

        assert result == FetchSuccess(url=URL, status=200, body=b'{"server_list": []}')
        assert result.text == '{"server_list": []}'

    def test_error_status_is_not_a_transport_failure(self, httpx_mock):
        """Non-2xx statuses are reported, not raised."""
        httpx_mock.add_response(url=URL, status_code=410)

        result = fetch(URL)

        assert isinstance(result, FetchSuccess)
        assert result.status == 410

    def test_timeout_becomes_failure(self, httpx_mock):
        """Timeouts are returned as FetchFailure."""
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"), url=URL)

        result = fetch(URL)

        assert isinstance(result, FetchFailure)
        assert isinstance(result.cause, httpx.ReadTimeout)
        assert result.status is None

    def test_connection_error_becomes_failure(self, httpx_mock):
        """Connection errors are returned as FetchFailure."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=URL)

        result = fetch(URL)

        assert isinstance(result, FetchFailure)
        assert isinstance(result.cause, httpx.ConnectError)

    def test_uses_given_client(self, httpx_mock):
        """A shared client is used when provided."""
        httpx_mock.add_response(url=URL, content=b"{}")

        with httpx.Client() as client:
            result = fetch(URL, client=client)

        assert isinstance(result, FetchSuccess)
        assert len(httpx_mock.get_requests()) == 1


class TestIsGone:
    """Tests for is_gone()."""

    def test_status_in_set(self):
        assert is_gone(410, {404, 410}) is True
        assert is_gone(404, frozenset({404, 410})) is True

    def test_status_not_in_set(self):
        assert is_gone(500, {404, 410}) is False
        assert is_gone(200, {404, 410}) is False

    def test_empty_set_never_gone(self):
        assert is_gone(410, set()) is False


class TestRequireOk:
    """Tests for require_ok()."""

    def test_passes_through_2xx(self):
        """Successful responses with a body are unchanged."""
        result = FetchSuccess(url=URL, status=200, body=b"{}")
        assert require_ok(result) is result

    def test_passes_through_failure(self):
        """Transport failures are unchanged."""
        result = FetchFailure(url=URL, cause=httpx.ConnectError("refused"))
        assert require_ok(result) is result

    def test_non_2xx_becomes_status_error(self):
        """Non-2xx responses become failures carrying HTTPStatusError."""
        result = require_ok(FetchSuccess(url=URL, status=503, body=b"busy"))

        assert isinstance(result, FetchFailure)
        assert isinstance(result.cause, httpx.HTTPStatusError)
        assert result.cause.response.status_code == 503
        assert result.status == 503

    def test_empty_body_becomes_failure(self):
        """An empty 200 body is a failure."""
        result = require_ok(FetchSuccess(url=URL, status=200, body=b""))

        assert isinstance(result, FetchFailure)
        assert isinstance(result.cause, EmptyResponseError)
