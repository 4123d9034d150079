"""Tests for run_with_retry and RetryPolicy."""

import pytest
from storefront.exceptions import PersistenceError
from storefront.utils.retry import RetriesExhausted, RetryPolicy, run_with_retry


class Flaky:
    def __init__(self, failures: int, error=PersistenceError("db down")):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.attempts == 3
        assert policy.delay == 0.2

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(attempts=0)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError):
            RetryPolicy(delay=-1)


class TestRunWithRetry:
    def test_first_attempt_succeeds(self):
        sleeps = []
        op = Flaky(0)
        assert run_with_retry(op, RetryPolicy(3, 0.5), (PersistenceError,), sleep=sleeps.append) == "ok"
        assert op.calls == 1
        assert sleeps == []

    def test_recovers_after_transient_failures(self):
        sleeps = []
        op = Flaky(2)
        assert run_with_retry(op, RetryPolicy(3, 0.5), (PersistenceError,), sleep=sleeps.append) == "ok"
        assert op.calls == 3
        assert sleeps == [0.5, 0.5]

    def test_gives_up_after_policy_attempts(self):
        sleeps = []
        op = Flaky(10)
        with pytest.raises(RetriesExhausted) as exc:
            run_with_retry(op, RetryPolicy(3, 0.5), (PersistenceError,), sleep=sleeps.append)
        assert op.calls == 3
        assert exc.value.attempts == 3
        assert isinstance(exc.value.last_error, PersistenceError)
        # No sleep after the final attempt
        assert len(sleeps) == 2

    def test_other_errors_are_not_retried(self):
        op = Flaky(10, error=KeyError("boom"))
        with pytest.raises(KeyError):
            run_with_retry(op, RetryPolicy(3, 0), (PersistenceError,), sleep=lambda _: None)
        assert op.calls == 1

    def test_zero_delay_never_sleeps(self):
        sleeps = []
        run_with_retry(Flaky(2), RetryPolicy(3, 0), (PersistenceError,), sleep=sleeps.append)
        assert sleeps == []
