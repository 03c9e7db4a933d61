"""Tests for the paced SEC HTTP client."""

from __future__ import annotations

from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests
from tenacity import wait_none

from edgarlens.errors import (
    IdentityRequiredError,
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitedError,
)
from edgarlens.sec.client import SecClient, retry_after_seconds

URL = "https://data.sec.gov/submissions/CIK0000320193.json"


def make_response(status: int, text: str = "", headers: Optional[Dict[str, str]] = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.headers = headers or {}
    return response


def make_client(*responses) -> SecClient:
    session = MagicMock()
    session.get.side_effect = list(responses)
    return SecClient(
        "Jane Analyst jane@example.com",
        session=session,
        request_interval=0,
        wait=wait_none(),
    )


class TestRetryAfter:
    def test_seconds(self) -> None:
        assert retry_after_seconds("5") == 5.0

    def test_missing(self) -> None:
        assert retry_after_seconds(None) is None
        assert retry_after_seconds("") is None

    def test_garbage(self) -> None:
        assert retry_after_seconds("soon") is None

    def test_past_http_date(self) -> None:
        assert retry_after_seconds("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0


class TestSecClient:
    """Test status mapping and retries."""

    def test_fetch_json(self) -> None:
        client = make_client(make_response(200, '{"cik": "0000320193"}'))

        assert client.fetch_json(URL) == {"cik": "0000320193"}
        _, kwargs = client.session.get.call_args
        assert kwargs["headers"] == {"User-Agent": "Jane Analyst jane@example.com"}

    def test_empty_json_body(self) -> None:
        with pytest.raises(ParseError, match="empty JSON"):
            make_client(make_response(200, "  ")).fetch_json(URL)

    def test_invalid_json_body(self) -> None:
        with pytest.raises(ParseError):
            make_client(make_response(200, "<html>")).fetch_json(URL)

    def test_not_found_is_not_retried(self) -> None:
        client = make_client(make_response(404), make_response(200, "{}"))

        with pytest.raises(NotFoundError):
            client.fetch_text(URL)
        assert client.session.get.call_count == 1

    def test_rate_limit_then_success(self) -> None:
        client = make_client(make_response(429, headers={"Retry-After": "0"}), make_response(200, "ok"))

        assert client.fetch_text(URL) == "ok"
        assert client.session.get.call_count == 2

    def test_rate_limit_exhausts_attempts(self) -> None:
        client = make_client(*[make_response(429) for _ in range(4)])

        with pytest.raises(RateLimitedError) as excinfo:
            client.fetch_text(URL)
        assert excinfo.value.retriable
        assert client.session.get.call_count == 4

    def test_server_error_retried(self) -> None:
        client = make_client(*[make_response(503) for _ in range(4)])

        with pytest.raises(NetworkError) as excinfo:
            client.fetch_text(URL)
        assert excinfo.value.retriable
        assert client.session.get.call_count == 4

    def test_connection_error_retried(self) -> None:
        client = make_client(requests.ConnectionError("reset"), make_response(200, "ok"))

        assert client.fetch_text(URL) == "ok"

    def test_undeclared_automation(self) -> None:
        client = make_client(make_response(403, "Your request was identified as an Undeclared Automated Tool"))

        with pytest.raises(IdentityRequiredError):
            client.fetch_text(URL)

    def test_plain_forbidden(self) -> None:
        client = make_client(make_response(403, "Forbidden"))

        with pytest.raises(NetworkError) as excinfo:
            client.fetch_text(URL)
        assert not excinfo.value.retriable

    def test_client_error_not_retried(self) -> None:
        client = make_client(make_response(400), make_response(200, "ok"))

        with pytest.raises(NetworkError):
            client.fetch_text(URL)
        assert client.session.get.call_count == 1

    def test_context_manager_closes_session(self) -> None:
        client = make_client()
        with client:
            pass
        client.session.close.assert_called_once()
