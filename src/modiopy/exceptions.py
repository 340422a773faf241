"""
exceptions.py

Centralized exception types for the library.

Every error raised by the client derives from ModioError and carries an optional
HTTP status code, an optional raw response object and an optional mod.io
``error_ref`` (see https://docs.mod.io/#error-codes). Callers are expected to
branch on the exception class (and the ``kind`` attribute for auth/download
errors), never on the message text.

The module also holds the response classifier: ``classify_error`` is a pure
decision table ``(status, error_ref, rate limit headers) -> ErrorKind`` and
``error_for_status`` turns that decision into an exception instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "ModioError",
    "AuthError",
    "AuthErrorKind",
    "ValidationError",
    "RateLimitError",
    "StatusError",
    "BuilderError",
    "RequestError",
    "DecodeError",
    "DownloadError",
    "DownloadErrorKind",
    "ErrorKind",
    "RateLimitSnapshot",
    "classify_error",
    "error_for_status",
]

X_RATELIMIT_REMAINING = "X-RateLimit-Remaining"
X_RATELIMIT_RETRY_AFTER = "X-RateLimit-RetryAfter"

# 403 + this error_ref means the user must accept the Terms of Use first
TERMS_ACCEPTANCE_REQUIRED_REF = 11051


class ModioError(Exception):
    """
    Base class for all library-specific exceptions.

    Attributes
    ----------
    message: str
        Human readable error message.
    code: Optional[int]
        HTTP status code if the error was produced from a response.
    response: Optional[Any]
        Raw response object (requests.Response) for debugging.
    error_ref: Optional[int]
        mod.io error reference code, if the server supplied one.
    """

    def __init__(self, message: str, code: Optional[int] = None, response: Optional[Any] = None,
                 error_ref: Optional[int] = None):
        self.message = message
        self.code = code
        self.response = response
        self.error_ref = error_ref
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = self.message
        if self.code is not None:
            base += f" (code={self.code})"
        if self.error_ref is not None:
            base += f" (error_ref={self.error_ref})"
        return base

    def __repr__(self) -> str:
        return (f"<{self.__class__.__name__} code={self.code!r} error_ref={self.error_ref!r} "
                f"message={self.message!r}>")


class AuthErrorKind(Enum):
    UNAUTHORIZED = "unauthorized"
    TOKEN_REQUIRED = "token_required"
    TERMS_ACCEPTANCE_REQUIRED = "terms_acceptance_required"


class AuthError(ModioError):
    """
    The API key/access token is incorrect, revoked or expired, the endpoint needs a
    different authentication method, or the Terms of Use must be accepted first.
    """

    def __init__(self, kind: AuthErrorKind, message: Optional[str] = None, code: Optional[int] = None,
                 response: Optional[Any] = None, error_ref: Optional[int] = None):
        self.kind = kind
        super().__init__(message or f"authentication error: {kind.value}", code, response, error_ref)


class ValidationError(ModioError):
    """HTTP 422 - the request was understood but one or more fields failed validation."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None, code: Optional[int] = 422,
                 response: Optional[Any] = None, error_ref: Optional[int] = None):
        self.errors: Dict[str, str] = dict(errors or {})
        super().__init__(message, code, response, error_ref)

    def __str__(self) -> str:
        base = f"validation failed: {self.message!r}"
        for field_name, msg in self.errors.items():
            base += f"\n  {field_name}: {msg}"
        return base


class RateLimitError(ModioError):
    """
    The rate limit associated with the credentials has been exhausted.

    ``retry_after`` is expressed in seconds.
    """

    def __init__(self, retry_after: int, code: Optional[int] = None, response: Optional[Any] = None):
        self.retry_after = int(retry_after)
        super().__init__(f"API rate limit reached. Try again in {self.retry_after}s.", code, response)


class StatusError(ModioError):
    """Any other non-2xx response. ``envelope`` holds the decoded server error payload."""

    def __init__(self, code: int, envelope: Optional[Any] = None, response: Optional[Any] = None,
                 error_ref: Optional[int] = None):
        self.envelope = envelope
        prefix = "HTTP status client error" if 400 <= code < 500 else "HTTP status server error"
        message = f"{prefix} ({code})"
        if envelope is not None and getattr(envelope, "message", None):
            message += f": {envelope.message}"
        super().__init__(message, code, response, error_ref)

    def __str__(self) -> str:
        base = self.message
        if self.error_ref is not None:
            base += f" (error_ref={self.error_ref})"
        return base


class BuilderError(ModioError):
    """The outgoing request could not be built (malformed URL/header, unreadable form part)."""


class RequestError(ModioError):
    """Network / transport related error (DNS, TLS, timeouts, connection failures)."""


class DecodeError(ModioError):
    """The response body did not decode into the expected structure."""


class DownloadErrorKind(Enum):
    NO_PRIMARY_FILE = "no primary file"
    FILE_NOT_FOUND = "file not found"
    VERSION_NOT_FOUND = "version not found"
    MULTIPLE_FILES_FOUND = "multiple files found"
    IO = "sink write failed"


class DownloadError(ModioError):
    """
    Raised when a DownloadAction cannot be resolved to a single file, or when the
    sink refuses a chunk while streaming.

    Attributes
    ----------
    kind : DownloadErrorKind
    game_id, mod_id, file_id : Optional[int]
    version : Optional[str]
    """

    def __init__(self, kind: DownloadErrorKind, *, game_id: Optional[int] = None, mod_id: Optional[int] = None,
                 file_id: Optional[int] = None, version: Optional[str] = None, code: Optional[int] = None,
                 response: Optional[Any] = None, error_ref: Optional[int] = None):
        self.kind = kind
        self.game_id = game_id
        self.mod_id = mod_id
        self.file_id = file_id
        self.version = version
        super().__init__(_download_message(self), code, response, error_ref)


def _download_message(err: DownloadError) -> str:
    parts = []
    if err.game_id is not None:
        parts.append(f"game_id={err.game_id}")
    if err.mod_id is not None:
        parts.append(f"mod_id={err.mod_id}")
    if err.file_id is not None:
        parts.append(f"file_id={err.file_id}")
    if err.version is not None:
        parts.append(f"version={err.version!r}")
    if not parts:
        return f"download error: {err.kind.value}"
    return f"download error: {err.kind.value} ({', '.join(parts)})"


# Response classification
class ErrorKind(Enum):
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    TERMS_ACCEPTANCE_REQUIRED = "terms_acceptance_required"
    STATUS = "status"


def _parse_uint(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = str(value).strip()
    # isdigit alone also accepts non-ASCII digits such as "\xb2"
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


@dataclass(frozen=True)
class RateLimitSnapshot:
    """
    The two optional rate-limit headers of a single response.

    Attributes
    ----------
    remaining : Optional[int]
        Number of requests left in the current window.
    retry_after : Optional[int]
        Minutes until the window resets.
    """
    remaining: Optional[int] = None
    retry_after: Optional[int] = None

    @classmethod
    def from_headers(cls, headers: Optional[Mapping[str, str]]) -> "RateLimitSnapshot":
        """Parse the headers independently; missing or non-integer values become None."""
        if not headers:
            return cls()
        return cls(
            remaining=_parse_uint(headers.get(X_RATELIMIT_REMAINING)),
            retry_after=_parse_uint(headers.get(X_RATELIMIT_RETRY_AFTER)),
        )

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0 and self.retry_after is not None

    @property
    def retry_after_seconds(self) -> Optional[int]:
        if self.retry_after is None:
            return None
        return self.retry_after * 60


def classify_error(status: int, error_ref: Optional[int] = None,
                   rate_limit: Optional[RateLimitSnapshot] = None) -> ErrorKind:
    """
    Decide which error a non-2xx response maps to.

    Rate limit headers are checked first and win over anything in the body; after
    that the status code decides, and for 403 the error_ref.

    Parameters
    ----------
    status : int
        HTTP status code (non-2xx).
    error_ref : Optional[int]
        error_ref from the decoded error envelope, if any.
    rate_limit : Optional[RateLimitSnapshot]
        Parsed rate limit headers of the response.

    Returns
    -------
    ErrorKind
    """
    if rate_limit is not None and rate_limit.exhausted:
        return ErrorKind.RATE_LIMIT
    if status == 422:
        return ErrorKind.VALIDATION
    if status == 401:
        return ErrorKind.UNAUTHORIZED
    if status == 403 and error_ref == TERMS_ACCEPTANCE_REQUIRED_REF:
        return ErrorKind.TERMS_ACCEPTANCE_REQUIRED
    return ErrorKind.STATUS


def error_for_status(status: int, envelope: Optional[Any] = None,
                     rate_limit: Optional[RateLimitSnapshot] = None,
                     response: Optional[Any] = None) -> ModioError:
    """
    Convert a non-2xx status (+ decoded error envelope + rate limit headers) into
    the matching ModioError instance.

    Parameters
    ----------
    status : int
        HTTP status code returned by the server.
    envelope : Optional[ERRORENVELOPE]
        Decoded error payload. May be None when the rate limit check short-circuits
        body decoding.
    rate_limit : Optional[RateLimitSnapshot]
        Parsed rate limit headers.
    response : Any
        Raw response object to attach to the exception instance.

    Returns
    -------
    ModioError
        An instance of a subclass representing the outcome.
    """
    error_ref = getattr(envelope, "error_ref", None)
    kind = classify_error(status, error_ref, rate_limit)

    if kind is ErrorKind.RATE_LIMIT:
        return RateLimitError(rate_limit.retry_after_seconds, status, response)
    if kind is ErrorKind.VALIDATION:
        return ValidationError(
            getattr(envelope, "message", None) or "Unprocessable Entity",
            getattr(envelope, "errors", None),
            status,
            response,
            error_ref,
        )
    if kind is ErrorKind.UNAUTHORIZED:
        return AuthError(AuthErrorKind.UNAUTHORIZED, code=status, response=response, error_ref=error_ref)
    if kind is ErrorKind.TERMS_ACCEPTANCE_REQUIRED:
        return AuthError(AuthErrorKind.TERMS_ACCEPTANCE_REQUIRED, code=status, response=response,
                         error_ref=error_ref)
    return StatusError(status, envelope, response, error_ref)


def token_required() -> AuthError:
    """Error for endpoints that only accept an OAuth 2 bearer token."""
    return AuthError(AuthErrorKind.TOKEN_REQUIRED, "authentication error: this endpoint requires a bearer token")
