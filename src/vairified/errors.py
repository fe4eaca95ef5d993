"""
Exception hierarchy for the Vairified client.

Every HTTP failure is mapped here by ``error_from_response`` so that all
client methods raise the same exception types for the same responses:

    VairifiedError            any non-2xx response (status_code attached)
    ├── ValidationError       400
    ├── AuthenticationError   401
    ├── NotFoundError         404
    ├── RateLimitError        429 (retry_after from the Retry-After header)
    ├── OAuthError            OAuth flow failures (error_code, e.g. invalid_grant)
    └── TransportError        no response at all (status_code is None)
        └── RequestTimeoutError

Failures that happen before any request is sent are not part of that tree:
ConfigurationError for bad client settings and PreconditionError for
operations the caller may not perform on a given object.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


# ---------------------------------------------------------------------------
# HTTP taxonomy
# ---------------------------------------------------------------------------

class VairifiedError(Exception):
    """Base exception for Vairified API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class RateLimitError(VairifiedError):
    """Raised when the API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message, status_code=429, response=response)
        self.retry_after = retry_after


class AuthenticationError(VairifiedError):
    """Raised when the API key is invalid or missing."""

    def __init__(self, message: str = "Invalid API key", response: Any = None):
        super().__init__(message, status_code=401, response=response)


class NotFoundError(VairifiedError):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str = "Resource not found", response: Any = None):
        super().__init__(message, status_code=404, response=response)


class ValidationError(VairifiedError):
    """Raised when the API rejects the request payload."""

    def __init__(self, message: str = "Validation error", response: Any = None):
        super().__init__(message, status_code=400, response=response)


class OAuthError(VairifiedError):
    """
    Raised when an OAuth operation fails.

    Covers authorization start, token exchange, refresh and revocation.
    ``error_code`` holds the provider code such as ``invalid_grant`` or
    ``invalid_scope``.
    """

    def __init__(
        self,
        message: str = "OAuth error",
        error_code: Optional[str] = None,
        response: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, status_code=status_code, response=response)
        self.error_code = error_code


class TransportError(VairifiedError):
    """Raised when no HTTP response was received."""


class RequestTimeoutError(TransportError):
    """Raised when a request exceeds the client timeout."""


# ---------------------------------------------------------------------------
# Local failures
# ---------------------------------------------------------------------------

class ConfigurationError(ValueError):
    """Raised when the client cannot be configured (e.g. no API key)."""


class PreconditionError(RuntimeError):
    """Raised when an operation is not allowed on an object in its current state."""


class ClientNotAttachedError(PreconditionError):
    """Raised by follow-up operations on objects built without a client."""


# ---------------------------------------------------------------------------
# Response mapping
# ---------------------------------------------------------------------------

_STATUS_ERRORS: dict[int, type[VairifiedError]] = {
    400: ValidationError,
    401: AuthenticationError,
    404: NotFoundError,
}

# Statuses that keep their regular mapping on OAuth endpoints
_NON_OAUTH_STATUSES = {401, 429}


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a Retry-After header given in seconds."""
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


def error_from_response(response: httpx.Response, *, oauth: bool = False) -> VairifiedError:
    """
    Build the exception for a non-2xx response.

    The message comes from the JSON body's ``message`` field when the body
    parses, otherwise from the HTTP reason phrase.

    Args:
        response: The failed HTTP response
        oauth: Whether the request targeted an OAuth endpoint

    Returns:
        The exception instance to raise
    """
    status = response.status_code
    body: Any = None
    message = response.reason_phrase

    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])

    if oauth and 400 <= status < 500 and status not in _NON_OAUTH_STATUSES:
        error_code = body.get("error") if isinstance(body, dict) else None
        return OAuthError(message, error_code=error_code, response=body, status_code=status)

    if status == 429:
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        return RateLimitError(message, retry_after=retry_after, response=body)

    error_cls = _STATUS_ERRORS.get(status)
    if error_cls is not None:
        return error_cls(message, response=body)

    return VairifiedError(message, status_code=status, response=body)
