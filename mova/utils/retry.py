"""
RETRY POLICY UTILITY
====================

Describes how many times a backend call may be attempted and how long to wait
between attempts. The orchestrator owns the loop; a policy only answers
"how many attempts" and "how long after failed attempt i".

Schedules:
  flat_delay(ms)     - the same wait after every failed attempt.
  linear_delay(ms)   - wait grows by `ms` each time: ms, 2*ms, 3*ms, ...

Example:
  policy = RetryPolicy(max_attempts=6, delay_ms=linear_delay(2000))
  policy.delay_seconds(0)  # 2.0
"""

from dataclasses import dataclass
from typing import Callable


DelaySchedule = Callable[[int], int]


def flat_delay(ms: int) -> DelaySchedule:
    """Return a schedule that always waits `ms` milliseconds."""
    def schedule(attempt_index: int) -> int:
        return ms
    return schedule


def linear_delay(step_ms: int) -> DelaySchedule:
    """
    Return a schedule that waits (attempt_index + 1) * step_ms.

    With five retries this is the same as (6 - remaining_retries) * step_ms,
    where remaining_retries counts down from 5 as attempts fail.
    """
    def schedule(attempt_index: int) -> int:
        return (attempt_index + 1) * step_ms
    return schedule


@dataclass(frozen=True)
class RetryPolicy:
    """
    max_attempts: total attempts including the first one.
    delay_ms: wait (milliseconds) after failed attempt `attempt_index` (0-based).
    fallback: True moves to the next candidate model on each retry;
              False retries the same model.
    """
    max_attempts: int
    delay_ms: DelaySchedule
    fallback: bool = False

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_seconds(self, attempt_index: int) -> float:
        return self.delay_ms(attempt_index) / 1000.0

    def model_for(self, models: tuple, attempt_index: int) -> str:
        """Pick the model for an attempt; fallback policies walk the list, others stay on the first."""
        if self.fallback:
            return models[min(attempt_index, len(models) - 1)]
        return models[0]


def fallback_policy(models: tuple, delay_ms: int) -> RetryPolicy:
    """One attempt per candidate model, flat wait between candidates."""
    return RetryPolicy(max_attempts=len(models), delay_ms=flat_delay(delay_ms), fallback=True)
