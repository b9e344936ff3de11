"""
Bounded retry with exponential backoff for outbound calls.

The loop knows nothing about HTTP: each attempt either returns a value or raises,
and a caller-supplied ``classify`` decides whether the exception is worth another
attempt. Used by the courier client; any other outbound integration can reuse it.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Decision(str, Enum):
    RETRY = "retry"
    FAIL = "fail"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay: float = 1.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based failed attempt: 1s, 2s, 4s, ..."""
        return self.base_delay * (2**attempt)


def call_with_retry(
    fn: Callable[[], T],
    classify: Callable[[Exception], Decision],
    policy: RetryPolicy = RetryPolicy(),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``fn`` until it returns, ``classify`` says FAIL, or attempts run out.
    The last exception is re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            decision = classify(exc)
            if decision is Decision.FAIL or attempt >= policy.max_retries:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "Attempt %s/%s failed (%s), retrying in %.1fs",
                attempt + 1,
                policy.max_attempts,
                type(exc).__name__,
                delay,
            )
            sleep(delay)
            attempt += 1
