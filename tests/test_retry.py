"""Tests for retry policies and delay schedules."""

from __future__ import annotations

import pytest

from mova.utils.retry import RetryPolicy, fallback_policy, flat_delay, linear_delay


def test_flat_delay_is_constant() -> None:
    schedule = flat_delay(1000)
    assert [schedule(i) for i in range(3)] == [1000, 1000, 1000]


def test_linear_delay_matches_remaining_retries_formula() -> None:
    schedule = linear_delay(2000)
    max_retries = 5
    for attempt_index in range(max_retries):
        remaining = max_retries - attempt_index
        assert schedule(attempt_index) == (6 - remaining) * 2000


def test_delay_seconds() -> None:
    policy = RetryPolicy(max_attempts=2, delay_ms=flat_delay(2000))
    assert policy.delay_seconds(0) == 2.0


def test_fallback_policy_walks_candidates() -> None:
    models = ("a", "b", "c")
    policy = fallback_policy(models, 1000)
    assert policy.max_attempts == 3
    assert [policy.model_for(models, i) for i in range(3)] == ["a", "b", "c"]


def test_same_model_policy_stays_on_first() -> None:
    policy = RetryPolicy(max_attempts=6, delay_ms=linear_delay(2000))
    assert {policy.model_for(("only",), i) for i in range(6)} == {"only"}


def test_at_least_one_attempt() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0, delay_ms=flat_delay(0))
