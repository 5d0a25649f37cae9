"""Tests for classify_failure ordering and the error taxonomy."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from mova.services.errors import (
    AUTH_MESSAGE,
    RATE_LIMIT_MESSAGE,
    ClassifiedError,
    ErrorKind,
    MissingCredentialError,
    classify_failure,
)
from tests.fakes import FakeAPIError


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "message",
        ["API_KEY_INVALID", "API key not valid. Please pass a valid API key."],
    )
    def test_auth(self, message: str) -> None:
        verdict = classify_failure(FakeAPIError(message, code=400))
        assert verdict.error.kind is ErrorKind.AUTH_ERROR
        assert verdict.error.message == AUTH_MESSAGE
        assert verdict.retriable is False

    @pytest.mark.parametrize("message", ["Finish reason: SAFETY", "Prompt was blocked"])
    def test_safety(self, message: str) -> None:
        verdict = classify_failure(Exception(message))
        assert verdict.error.kind is ErrorKind.SAFETY_ERROR
        assert verdict.retriable is False

    def test_quota_with_429_status(self) -> None:
        verdict = classify_failure(FakeAPIError("You exceeded your current quota", code=429))
        assert verdict.error.kind is ErrorKind.RATE_LIMIT
        assert verdict.error.message == RATE_LIMIT_MESSAGE
        assert verdict.retriable is True

    def test_status_alone_is_enough(self) -> None:
        exc = Exception("Too many requests")
        exc.status_code = 429
        assert classify_failure(exc).error.kind is ErrorKind.RATE_LIMIT

    @pytest.mark.parametrize(
        "message",
        ["Rate limit reached for requests", "Error 429", "RESOURCE_EXHAUSTED", "quota"],
    )
    def test_rate_limit_markers_without_status(self, message: str) -> None:
        verdict = classify_failure(Exception(message))
        assert verdict.error.kind is ErrorKind.RATE_LIMIT
        assert verdict.retriable is True

    def test_string_status_is_ignored(self) -> None:
        exc = Exception("server said no")
        exc.status = "RESOURCE_PENDING"
        assert classify_failure(exc).error.kind is ErrorKind.UNKNOWN_ERROR

    @pytest.mark.parametrize("message", ["network unreachable", "Failed to fetch"])
    def test_network_markers(self, message: str) -> None:
        assert classify_failure(Exception(message)).error.kind is ErrorKind.NETWORK_ERROR

    @pytest.mark.parametrize(
        "exc",
        [httpx.ConnectError("connection refused"), ConnectionResetError(), asyncio.TimeoutError()],
    )
    def test_transport_errors(self, exc: Exception) -> None:
        verdict = classify_failure(exc)
        assert verdict.error.kind is ErrorKind.NETWORK_ERROR
        assert verdict.retriable is False

    def test_unknown_keeps_original_message(self) -> None:
        exc = FakeAPIError("Internal error encountered.", code=500)
        verdict = classify_failure(exc)
        assert verdict.error.kind is ErrorKind.UNKNOWN_ERROR
        assert verdict.error.message == "Internal error encountered."
        assert verdict.error.raw_details is exc

    def test_first_matching_rule_wins(self) -> None:
        # Auth is checked before rate limit, safety before rate limit.
        assert classify_failure(FakeAPIError("API_KEY_INVALID quota", code=429)).error.kind is ErrorKind.AUTH_ERROR
        assert classify_failure(FakeAPIError("SAFETY", code=429)).error.kind is ErrorKind.SAFETY_ERROR

    def test_classified_error_passes_through(self) -> None:
        original = ClassifiedError("nothing came back", ErrorKind.EMPTY_RESPONSE)
        verdict = classify_failure(original)
        assert verdict.error is original
        assert verdict.retriable is False


def test_classified_error_str() -> None:
    error = ClassifiedError("slow down", ErrorKind.RATE_LIMIT)
    assert str(error) == "RATE_LIMIT: slow down"


def test_missing_credential_message() -> None:
    assert MissingCredentialError().message == "GEMINI_API_KEY is not set"
