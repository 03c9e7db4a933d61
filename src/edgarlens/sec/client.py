"""Paced HTTP client for SEC EDGAR with retry handling."""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from edgarlens.errors import (
    IdentityRequiredError,
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitedError,
    ResearchError,
)

LOGGER = logging.getLogger(__name__)

REQUEST_INTERVAL_SECONDS = 0.125
MAX_ATTEMPTS = 4
DEFAULT_TIMEOUT = 30.0

_BACKOFF = wait_exponential_jitter(initial=0.25, max=8.0, jitter=0.12)


def retry_after_seconds(header_value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given either as seconds or as an HTTP date."""
    if not header_value:
        return None
    value = header_value.strip()
    if value.isdigit():
        return float(value)
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


def _is_retriable(exc: BaseException) -> bool:
    return isinstance(exc, ResearchError) and exc.retriable


def _wait_for_retry(retry_state: RetryCallState) -> float:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        return retry_after
    return _BACKOFF(retry_state)


def _is_undeclared_automation(body: str) -> bool:
    lowered = body.lower()
    return (
        "undeclared automated tool" in lowered
        or "please declare your traffic" in lowered
        or "acceptable policy" in lowered
    )


class SecClient:
    """GET-only SEC client.

    Requests are spaced at least ``request_interval`` seconds apart across
    threads sharing the client. 429, 5xx and connection failures are retried
    up to ``max_attempts`` times, honoring ``Retry-After`` when present.
    """

    def __init__(
        self,
        user_agent: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        request_interval: float = REQUEST_INTERVAL_SECONDS,
        wait: Callable[[RetryCallState], float] = _wait_for_retry,
    ) -> None:
        self.user_agent = user_agent
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.request_interval = request_interval
        self._wait = wait
        self._pace_lock = threading.Lock()
        self._next_allowed_at = 0.0

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "SecClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch_json(self, url: str) -> Any:
        body = self._request(url)
        if not body.strip():
            raise ParseError(f"SEC returned empty JSON response from {url}")
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Unable to parse SEC JSON response from {url}: {exc}") from exc

    def fetch_text(self, url: str) -> str:
        return self._request(url)

    def _pace(self) -> None:
        with self._pace_lock:
            delay = self._next_allowed_at - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            self._next_allowed_at = max(self._next_allowed_at, time.monotonic()) + self.request_interval

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        LOGGER.debug(
            "Attempt %d/%d failed (%s), retrying",
            retry_state.attempt_number,
            self.max_attempts,
            exc,
        )

    def _request(self, url: str) -> str:
        retrying = Retrying(
            retry=retry_if_exception(_is_retriable),
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(self._request_once, url)

    def _request_once(self, url: str) -> str:
        self._pace()
        LOGGER.debug("GET %s", url)
        try:
            response = self.session.get(
                url, headers={"User-Agent": self.user_agent}, timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkError(f"SEC request failed for {url}: {exc}", retriable=True) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"SEC request failed for {url}: {exc}") from exc

        status = response.status_code
        if status == 403:
            if _is_undeclared_automation(response.text):
                raise IdentityRequiredError(
                    "SEC rejected request as undeclared automation. "
                    "Use a valid --user-agent or EDGAR_USER_AGENT."
                )
            raise NetworkError(f"SEC request failed for {url}: 403 Forbidden")
        if status == 404:
            raise NotFoundError(f"SEC resource not found at {url}")
        if status == 429:
            raise RateLimitedError(
                f"SEC rate limit reached for {url}",
                retry_after=retry_after_seconds(response.headers.get("Retry-After")),
            )
        if status >= 500:
            raise NetworkError(
                f"SEC request failed for {url}: HTTP {status}",
                retriable=True,
                retry_after=retry_after_seconds(response.headers.get("Retry-After")),
            )
        if status >= 400:
            raise NetworkError(f"SEC request failed for {url}: HTTP {status}")

        return response.text
