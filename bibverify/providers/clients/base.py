"""Shared HTTP client utilities with rate limiting, retries and error handling."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:  # pragma: no cover
    from bibverify.providers.rate_limit import TokenBucket

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": "bibverify",
    "Accept": "application/json",
}

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

RETRY_STOP_AFTER_ATTEMPT = 4

WAIT_MULTIPLIER = 2
WAIT_MIN_SECONDS = 2
WAIT_MAX_SECONDS = 8

RETRY_AFTER_MAX_SECONDS = 60.0

_shared_session: Optional[requests.Session] = None


class ClientError(Exception):
    """Base exception for HTTP client errors."""


class NotFoundError(ClientError):
    """Raised when a requested resource cannot be found (HTTP 404)."""


class RateLimitedError(ClientError):
    """Raised when the upstream service keeps responding with HTTP 429."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RequestRejectedError(ClientError):
    """Raised when the upstream rejects the request (HTTP 4xx, excluding 404/429)."""

    def __init__(self, status: int, message: str, body_excerpt: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.body_excerpt = body_excerpt


class UnauthorizedError(RequestRejectedError):
    """Raised for HTTP 401 responses, typically an invalid API key."""


class ForbiddenError(RequestRejectedError):
    """Raised for HTTP 403 responses when access is forbidden."""


class UpstreamError(ClientError):
    """Raised when the upstream service fails after retries."""


class MalformedResponseError(ClientError):
    """Raised when a successful response does not carry the expected JSON body."""


class RetryableResponseError(Exception):
    """Internal exception used to trigger retries for retryable responses."""

    def __init__(self, response: requests.Response):
        super().__init__("Retryable response received")
        self.response = response


def _get_shared_session() -> requests.Session:
    """Return a shared :class:`requests.Session` with default headers."""

    global _shared_session
    if _shared_session is None:
        _shared_session = requests.Session()
        _shared_session.headers.update(DEFAULT_HEADERS)
    return _shared_session


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None

    if value.isdigit():
        return float(value)

    try:
        retry_time = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None

    if retry_time is None:
        return None

    if retry_time.tzinfo is None:
        retry_time = retry_time.replace(tzinfo=timezone.utc)

    delay = (retry_time - datetime.now(timezone.utc)).total_seconds()
    return max(delay, 0.0)


_backoff_wait = wait_exponential(
    multiplier=WAIT_MULTIPLIER, min=WAIT_MIN_SECONDS, max=WAIT_MAX_SECONDS
)

_BODY_EXCERPT_LIMIT = 200


def _retry_wait(retry_state: RetryCallState) -> float:
    """Wait strategy honoring Retry-After headers, else jittered 2s/4s/8s backoff."""

    if retry_state.outcome is not None and retry_state.outcome.failed:
        exception = retry_state.outcome.exception()
        if isinstance(exception, RetryableResponseError):
            retry_after = _parse_retry_after(exception.response.headers.get("Retry-After"))
            if retry_after is not None:
                return min(retry_after, RETRY_AFTER_MAX_SECONDS)

    fallback = _backoff_wait(retry_state)
    jittered_min = fallback * 0.5
    jittered_max = min(fallback * 1.5, WAIT_MAX_SECONDS)
    return random.uniform(jittered_min, jittered_max)


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    args = retry_state.args or ()
    client = args[0] if args else None
    if not getattr(client, "debug_logging", False):
        return

    method = args[1] if len(args) > 1 else "UNKNOWN"
    url = args[2] if len(args) > 2 else ""
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    reason = f" due to {exception}" if exception else ""

    logger.debug(
        "Retry attempt %s for %s %s%s",
        retry_state.attempt_number,
        str(method).upper(),
        url,
        reason,
    )


def _get_body_excerpt(response: requests.Response) -> Optional[str]:
    try:
        body_text = response.text
    except Exception:
        return None

    if not body_text:
        return None

    return " ".join(body_text.split())[:_BODY_EXCERPT_LIMIT]


class BaseHttpClient:
    """Base class providing shared HTTP behavior for registry clients.

    Every attempt, retries included, first takes a token from the optional
    ``rate_limiter`` so all workers hitting one registry share its budget.
    Network failures and responses in :data:`RETRYABLE_STATUS_CODES` are
    retried up to :data:`RETRY_STOP_AFTER_ATTEMPT` times. Once the budget is
    exhausted HTTP 429 raises :class:`RateLimitedError` and 5xx raises
    :class:`UpstreamError`.
    """

    BASE_URL = ""
    SOURCE_NAME = ""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        rate_limiter: Optional["TokenBucket"] = None,
        debug_logging: bool = False,
    ) -> None:
        self.session = session or _get_shared_session()
        for key, value in DEFAULT_HEADERS.items():
            self.session.headers.setdefault(key, value)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.debug_logging = debug_logging

    @retry(
        reraise=True,
        stop=stop_after_attempt(RETRY_STOP_AFTER_ATTEMPT),
        wait=_retry_wait,
        retry=retry_if_exception_type((requests.RequestException, RetryableResponseError)),
        before_sleep=_log_retry_attempt,
    )
    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableResponseError(response)
        return response

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        if self.debug_logging:
            logger.debug("HTTP %s %s", method.upper(), path)
        try:
            response = self._send(method, url, params=params, headers=headers, **kwargs)
        except RetryableResponseError as exc:
            response = exc.response
        except requests.RequestException as exc:
            raise UpstreamError(f"Request failed: {exc}") from exc

        return self._handle_response(response)

    def _get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        response = self._request("GET", path, params=params, headers=headers)
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"{self.SOURCE_NAME or 'upstream'} returned a non-JSON body"
            ) from exc
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"{self.SOURCE_NAME or 'upstream'} returned an unexpected JSON shape"
            )
        return payload

    def _handle_response(self, response: requests.Response) -> requests.Response:
        status = response.status_code
        if status == 404:
            raise NotFoundError("Resource not found")
        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitedError("Rate limit exceeded", retry_after=retry_after)
        if 500 <= status < 600:
            excerpt = _get_body_excerpt(response)
            message = "Upstream service error"
            if excerpt:
                message = f"{message}: {excerpt}"
            raise UpstreamError(f"{message} ({status})")
        if 400 <= status < 500:
            excerpt = _get_body_excerpt(response)
            message = "Client request rejected"
            if excerpt:
                message = f"{message}: {excerpt}"
            if status == 401:
                raise UnauthorizedError(status, f"Unauthorized ({status})", body_excerpt=excerpt)
            if status == 403:
                raise ForbiddenError(status, f"Forbidden ({status})", body_excerpt=excerpt)
            raise RequestRejectedError(status, f"{message} ({status})", body_excerpt=excerpt)
        return response
