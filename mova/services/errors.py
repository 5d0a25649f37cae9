"""
ERROR CLASSIFICATION MODULE
===========================

Turns raw failures from the Gemini backend into a small, stable taxonomy the
UI can render and the orchestrator can act on.

KINDS:
  AUTH_ERROR      - invalid API key
  SAFETY_ERROR    - prompt or output blocked by safety filters
  RATE_LIMIT      - 429 / quota exhausted (the only kind ever retried)
  NETWORK_ERROR   - transport failures and per-call timeouts
  EMPTY_RESPONSE  - the model answered with no text
  NO_CANDIDATES   - the model returned no result candidates
  UNKNOWN_ERROR   - anything else, carrying the original message

classify_failure() is the single decision point: it runs once per raw failure
and returns both the retry decision and the ClassifiedError to surface.

MissingCredentialError is separate from the taxonomy: it is raised when the
backend client is built without GEMINI_API_KEY, before any request exists.
"""

import asyncio
from enum import Enum
from typing import Any, NamedTuple, Optional

import httpx


class ErrorKind(str, Enum):
    AUTH_ERROR = "AUTH_ERROR"
    SAFETY_ERROR = "SAFETY_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK_ERROR = "NETWORK_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    NO_CANDIDATES = "NO_CANDIDATES"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# User-facing messages per kind. UNKNOWN_ERROR uses the raw failure message instead.
AUTH_MESSAGE = "The provided API key is invalid. Please check your configuration."
SAFETY_MESSAGE = "The request was blocked by safety filters. Please try a different prompt."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment before trying again."
NETWORK_MESSAGE = "Network error. Please check your internet connection."
UNKNOWN_MESSAGE = "An unexpected error occurred"

_AUTH_MARKERS = ("API_KEY_INVALID", "API key not valid")
_SAFETY_MARKERS = ("SAFETY", "blocked")
_RATE_LIMIT_MARKERS = ("429", "quota", "rate limit", "resource_exhausted")
_NETWORK_MARKERS = ("network", "fetch")
_TRANSPORT_ERRORS = (httpx.TransportError, ConnectionError, asyncio.TimeoutError, TimeoutError)


class ClassifiedError(Exception):
    """A backend failure mapped onto ErrorKind. Never mutated after creation."""

    def __init__(self, message: str, kind: ErrorKind, raw_details: Any = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.raw_details = raw_details

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"ClassifiedError(kind={self.kind.value}, message={self.message!r})"


class MissingCredentialError(RuntimeError):
    """GEMINI_API_KEY is not configured; raised before any network attempt."""

    def __init__(self, message: str = "GEMINI_API_KEY is not set"):
        super().__init__(message)
        self.message = message


class FailureVerdict(NamedTuple):
    retriable: bool
    error: ClassifiedError


def _failure_message(exc: BaseException) -> str:
    # google.genai APIError keeps the server text on .message; str() adds code and status.
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or UNKNOWN_MESSAGE


def _failure_status(exc: BaseException) -> Optional[int]:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_failure(exc: BaseException) -> FailureVerdict:
    """
    Classify one raw failure. The checks run in a fixed order and the first match wins:
    auth, safety, rate limit, network, then unknown. Only RATE_LIMIT is retriable.
    An already classified error is returned as is.
    """
    if isinstance(exc, ClassifiedError):
        return FailureVerdict(exc.kind is ErrorKind.RATE_LIMIT, exc)

    message = _failure_message(exc)
    text = f"{message} {exc}"
    lowered = text.lower()
    status = _failure_status(exc)

    if any(marker in text for marker in _AUTH_MARKERS):
        error = ClassifiedError(AUTH_MESSAGE, ErrorKind.AUTH_ERROR, exc)
    elif any(marker in text for marker in _SAFETY_MARKERS):
        error = ClassifiedError(SAFETY_MESSAGE, ErrorKind.SAFETY_ERROR, exc)
    elif status == 429 or any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        error = ClassifiedError(RATE_LIMIT_MESSAGE, ErrorKind.RATE_LIMIT, exc)
    elif isinstance(exc, _TRANSPORT_ERRORS) or any(marker in lowered for marker in _NETWORK_MARKERS):
        error = ClassifiedError(NETWORK_MESSAGE, ErrorKind.NETWORK_ERROR, exc)
    else:
        error = ClassifiedError(message, ErrorKind.UNKNOWN_ERROR, exc)

    return FailureVerdict(error.kind is ErrorKind.RATE_LIMIT, error)
