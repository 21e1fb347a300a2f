"""Bounded retry with exponential backoff for transient platform failures."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .ports.platform import PlatformError

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

type Sleep = Callable[[float], None]

MUTATION_RETRY_SIGNATURES: Final[tuple[str, ...]] = (
    "Another task is also trying to change",
    "CONCURRENT_MODIFICATION",
    "RESOURCE_EXHAUSTED",
    "INTERNAL",
    "DEADLINE_EXCEEDED",
)
QUERY_RETRY_SIGNATURES: Final[tuple[str, ...]] = (
    "RESOURCE_EXHAUSTED",
    "INTERNAL",
    "BACKEND_ERROR",
    "DEADLINE_EXCEEDED",
    "temporarily",
    "rate limit",
)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt budget, backoff curve and the error signatures worth retrying."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    retryable_signatures: tuple[str, ...] = MUTATION_RETRY_SIGNATURES
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        pattern = "|".join(re.escape(signature) for signature in self.retryable_signatures)
        object.__setattr__(self, "_pattern", re.compile(pattern or r"(?!)", re.IGNORECASE))

    def is_retryable(self, message: str) -> bool:
        return bool(self._pattern.search(message))

    def delay_before_retry(self, retry_number: int) -> float:
        """Delay before the ``retry_number``-th retry (1-based)."""

        return self.base_delay * self.multiplier ** (retry_number - 1)


MUTATION_RETRY: Final[RetryPolicy] = RetryPolicy()
QUERY_RETRY: Final[RetryPolicy] = RetryPolicy(retryable_signatures=QUERY_RETRY_SIGNATURES)


@dataclass(frozen=True, slots=True)
class Attempted[T]:
    """Final value (or failure) of a retried call and how many attempts it took."""

    value: T | None
    attempts: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _no_failure(_value: object) -> str | None:
    return None


def run_with_retry[T](
    call: Callable[[], T],
    policy: RetryPolicy,
    *,
    failure_of: Callable[[T], str | None] = _no_failure,
    sleep: Sleep = time.sleep,
    describe: str = "platform call",
) -> Attempted[T]:
    """Run ``call`` until it succeeds, fails permanently or exhausts the budget.

    A failure is either a raised :class:`PlatformError` or a returned value for which
    ``failure_of`` yields a message. Only messages matching the policy's signatures
    are retried.
    """

    attempt = 0
    while True:
        attempt += 1
        value: T | None
        try:
            value = call()
        except PlatformError as exc:
            value, message = None, str(exc)
        else:
            message = failure_of(value)
            if message is None:
                return Attempted(value=value, attempts=attempt)

        if attempt >= policy.max_attempts or not policy.is_retryable(message):
            return Attempted(value=value, attempts=attempt, error=message)
        delay = policy.delay_before_retry(attempt)
        log.warning(
            "Transient failure in %s (%s); retry #%d in %.1fs", describe, message, attempt, delay
        )
        sleep(delay)


__all__ = [
    "MUTATION_RETRY",
    "MUTATION_RETRY_SIGNATURES",
    "QUERY_RETRY",
    "QUERY_RETRY_SIGNATURES",
    "Attempted",
    "RetryPolicy",
    "Sleep",
    "run_with_retry",
]
