"""
HTTP transport for the signing provider.

Thin layer over ``urllib.request``:

- HTTPS only; redirects that downgrade to plain HTTP are refused.
- Response bodies are read with a size cap.
- Non-2xx responses become :class:`~signable.errors.ProviderError`
  carrying the status code and the provider's diagnostic body.
- Read-only requests (``http_get``) retry transient connection failures
  with exponential backoff. Mutating requests are sent exactly once.

Public API:
- http_get / http_post / http_delete
"""

from __future__ import annotations

__all__ = ["http_delete", "http_get", "http_post"]

import logging
import time
import urllib.error
import urllib.request
from typing import TYPE_CHECKING, Protocol, TypeVar
from urllib.parse import urlparse

from ..constants import (
    BYTES_PER_MB,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT_HTTP,
    ERROR_BODY_PREVIEW_LENGTH,
    MAX_RESPONSE_SIZE,
    RECV_BUFFER_SIZE,
)
from ..errors import ProviderError

if TYPE_CHECKING:
    import http.client
    from collections.abc import Callable

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


def _require_https_url(url: str) -> None:
    """Reject non-HTTPS URLs so the API key never travels in plaintext.

    Raises:
        ProviderError: If the URL scheme is not https.
    """
    scheme = urlparse(url).scheme.lower()
    if scheme != "https":
        raise ProviderError(
            f"Only HTTPS URLs are allowed (got {scheme}://). "
            "API keys must not be sent over unencrypted connections."
        )


# ── Retry logic ──────────────────────────────────────────────────────


def _with_retry(
    fn: Callable[[], _T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    delay: float = DEFAULT_RETRY_DELAY,
    backoff: float = DEFAULT_RETRY_BACKOFF,
    operation: str = "request",
) -> _T:
    """
    Execute a function with exponential backoff retry.

    Only errors flagged ``retryable`` (timeouts, refused connections)
    are retried; provider rejections propagate immediately.

    Args:
        fn: Function to execute (takes no arguments, returns result).
        max_retries: Maximum number of retry attempts.
        delay: Initial delay between retries in seconds.
        backoff: Multiplier for delay after each retry.
        operation: Description of operation for logging.

    Returns:
        Result from successful fn() call.

    Raises:
        ProviderError: The last error if all retries fail.
    """
    current_delay = delay
    attempt = 0
    while True:
        try:
            return fn()
        except ProviderError as exc:
            if attempt >= max_retries or not exc.retryable:
                raise
            _logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %.1fs...",
                operation,
                attempt + 1,
                max_retries + 1,
                exc,
                current_delay,
            )
            time.sleep(current_delay)
            current_delay *= backoff
            attempt += 1


# ── Standard HTTPS (urllib) ──────────────────────────────────────────


class _Readable(Protocol):
    def read(self, amt: int = ...) -> bytes: ...


def _read_with_limit(response: _Readable, url: str) -> bytes:
    """Read an HTTP response body with size limit to prevent memory exhaustion."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = response.read(RECV_BUFFER_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > MAX_RESPONSE_SIZE:
            raise ProviderError(
                f"Response from {url} exceeds {MAX_RESPONSE_SIZE // BYTES_PER_MB} MB limit"
            )
        chunks.append(chunk)
    return b"".join(chunks)


class _SafeRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Redirect handler that refuses HTTPS to HTTP downgrades."""

    def redirect_request(  # type: ignore[override]  # urllib stubs use incompatible signature
        self,
        req: urllib.request.Request,
        fp: http.client.HTTPResponse,
        code: int,
        msg: str,
        headers: http.client.HTTPMessage,
        newurl: str,
    ) -> urllib.request.Request | None:
        parsed_orig = urlparse(req.full_url)
        parsed_new = urlparse(newurl)
        if parsed_orig.scheme == "https" and parsed_new.scheme == "http":
            raise ProviderError(f"Refused redirect from HTTPS to HTTP: {newurl}")
        return super().redirect_request(req, fp, code, msg, headers, newurl)


_safe_opener = urllib.request.build_opener(_SafeRedirectHandler)


def _safe_urlopen(
    url_or_request: str | urllib.request.Request, *, timeout: int
) -> http.client.HTTPResponse:
    """Open a URL/Request with safe redirect handling.

    Refuses HTTPS to HTTP downgrades. Thin wrapper to simplify testing.
    """
    return _safe_opener.open(url_or_request, timeout=timeout)


def _error_body(exc: urllib.error.HTTPError) -> str:
    """Best-effort decode of an error response body."""
    try:
        raw = exc.read()
    except OSError:
        return ""
    return raw.decode("utf-8", errors="replace") if raw else ""


def _urllib_request(
    method: str,
    url: str,
    *,
    body: bytes | None = None,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT_HTTP,
) -> bytes:
    """Send one request via urllib.request and return the response body."""
    _logger.debug(
        "%s %s (timeout=%ds, %d bytes)", method, url, timeout, len(body) if body else 0
    )
    req = urllib.request.Request(url, data=body, method=method)  # noqa: S310 -- HTTPS checked by caller
    if headers:
        for k, v in headers.items():
            req.add_header(k, v)
    try:
        with _safe_urlopen(req, timeout=timeout) as response:
            data = _read_with_limit(response, url)
            _logger.debug("%s %s -> %d bytes", method, url, len(data))
            return data
    except urllib.error.HTTPError as exc:
        # HTTPError is a URLError subclass; it must be handled first
        error_body = _error_body(exc)
        preview = error_body[:ERROR_BODY_PREVIEW_LENGTH]
        _logger.debug("%s %s -> HTTP %d: %s", method, url, exc.code, preview)
        raise ProviderError(
            f"Provider returned HTTP {exc.code} for {method} {url}: {preview}",
            status=exc.code,
            body=error_body,
        ) from exc
    except urllib.error.URLError as exc:
        raise ProviderError(
            f"{method} {url} failed: {exc.reason}",
            retryable=True,
        ) from exc
    except TimeoutError as exc:
        raise ProviderError(
            f"Connection timed out after {timeout}s: {url}",
            retryable=True,
        ) from exc


# ── Public API ───────────────────────────────────────────────────────


def http_get(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT_HTTP,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> bytes:
    """
    Fetch a URL, retrying transient connection failures.

    Args:
        url: Target URL (must be HTTPS).
        headers: Additional HTTP headers.
        timeout: HTTP timeout in seconds.
        max_retries: Maximum retry attempts on transient failures.

    Returns:
        Response body as bytes.

    Raises:
        ProviderError: On HTTP or connection failures.
    """
    _require_https_url(url)

    def _do_get() -> bytes:
        return _urllib_request("GET", url, headers=headers, timeout=timeout)

    if max_retries > 0:
        return _with_retry(_do_get, max_retries=max_retries, operation=f"GET {url}")
    return _do_get()


def http_post(
    url: str,
    body: bytes,
    *,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT_HTTP,
) -> bytes:
    """
    Send an HTTP POST exactly once.

    Raises:
        ProviderError: On HTTP or connection failures.
    """
    _require_https_url(url)
    return _urllib_request("POST", url, body=body, headers=headers, timeout=timeout)


def http_delete(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT_HTTP,
) -> bytes:
    """
    Send an HTTP DELETE exactly once.

    Raises:
        ProviderError: On HTTP or connection failures.
    """
    _require_https_url(url)
    return _urllib_request("DELETE", url, headers=headers, timeout=timeout)
