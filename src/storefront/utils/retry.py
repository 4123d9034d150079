"""Bounded retry with a fixed delay between attempts."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    delay: float = 0.2

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")


class RetriesExhausted(Exception):
    """Every attempt failed; ``last_error`` is the final failure."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def run_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    retry_on: tuple[type[BaseException], ...],
    sleep: Callable[[float], None] = time.sleep,
    **log_context,
) -> T:
    """Call ``operation`` until it succeeds or ``policy.attempts`` run out.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates from the attempt that raised it.
    """
    for attempt in range(1, policy.attempts + 1):
        try:
            return operation()
        except retry_on as exc:
            logger.warning(
                "Attempt failed",
                attempt=attempt,
                max_attempts=policy.attempts,
                error=str(exc),
                **log_context,
            )
            if attempt == policy.attempts:
                raise RetriesExhausted(policy.attempts, exc) from exc
            if policy.delay:
                sleep(policy.delay)
    raise AssertionError("unreachable")
