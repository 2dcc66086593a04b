"""Signable error types."""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConfigError",
    "DocumentNotFound",
    "DuplicateSigningRequest",
    "InvalidStateTransition",
    "LayoutOverflow",
    "ProviderError",
    "SanitizationFailure",
    "SignableError",
]


class SignableError(Exception):
    """Base error for Signable operations."""


class SanitizationFailure(SignableError):
    """Text could not be normalized by the regular rule set."""


class LayoutOverflow(SignableError):
    """A layout invariant was violated (content placed outside the page)."""


class ProviderError(SignableError):
    """The signing provider failed or rejected a request.

    Args:
        message: Human-readable error description.
        status: HTTP status code, or None for connection-level failures.
        body: Raw diagnostic payload returned by the provider, if any.
        retryable: Whether this error is transient and worth retrying.
            True for timeouts and connection failures; False for
            4xx/5xx responses.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.retryable = retryable

    def __reduce__(self) -> tuple[type[ProviderError], tuple[str], dict[str, Any]]:
        """Preserve status, body, and retryable flag across pickle/unpickle."""
        return (
            type(self),
            (str(self),),
            {"status": self.status, "body": self.body, "retryable": self.retryable},
        )

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.status = state.get("status")
        self.body = state.get("body")
        self.retryable = state.get("retryable", False)


class InvalidStateTransition(SignableError):
    """An event proposed a status change the lifecycle table does not allow."""

    def __init__(self, current: str, proposed: str) -> None:
        super().__init__(f"Transition {current!r} -> {proposed!r} is not allowed")
        self.current = current
        self.proposed = proposed

    def __reduce__(self) -> tuple[type[InvalidStateTransition], tuple[str, str]]:
        return (type(self), (self.current, self.proposed))


class DuplicateSigningRequest(SignableError):
    """A non-terminal signing request is already attached to the document."""


class DocumentNotFound(SignableError):
    """No document with the given id exists in the store."""


class ConfigError(SignableError):
    """Configuration validation error."""
