"""Retry loop: attempt counting, classification, backoff delays."""
import pytest

from app.core.retry import Decision, RetryPolicy, call_with_retry


class Boom(Exception):
    pass


def test_returns_first_success():
    assert call_with_retry(lambda: 42, lambda e: Decision.RETRY, sleep=lambda s: None) == 42


def test_retries_until_budget_then_reraises():
    calls, sleeps = [], []

    def fn():
        calls.append(1)
        raise Boom()

    with pytest.raises(Boom):
        call_with_retry(fn, lambda e: Decision.RETRY, RetryPolicy(max_retries=3, base_delay=0.5), sleeps.append)
    assert len(calls) == 4
    assert sleeps == [0.5, 1.0, 2.0]


def test_fail_decision_stops_immediately():
    calls = []

    def fn():
        calls.append(1)
        raise Boom()

    with pytest.raises(Boom):
        call_with_retry(fn, lambda e: Decision.FAIL, sleep=lambda s: None)
    assert len(calls) == 1


def test_recovers_after_transient_failure():
    attempts = iter([Boom(), Boom(), "ok"])

    def fn():
        item = next(attempts)
        if isinstance(item, Exception):
            raise item
        return item

    assert call_with_retry(fn, lambda e: Decision.RETRY, sleep=lambda s: None) == "ok"


def test_default_policy():
    p = RetryPolicy()
    assert p.max_attempts == 3
    assert [p.delay_for(i) for i in range(2)] == [1.0, 2.0]
