"""Read-after-write confirmation of executed operations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .ports.platform import PlatformError
from .retry import RetryPolicy, run_with_retry
from .types import Action, MemberKind, OutcomeStatus, VerifiedOutcome

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .ports.platform import AdsPlatform
    from .retry import Sleep
    from .types import ExecutionOutcome, Operation

log = getLogger(__name__)

NOT_VISIBLE: Final[str] = "change not yet visible"
VERIFY_FAILED_MESSAGE: Final[str] = "Post-verify failed"
VERIFIED_SUFFIX: Final[str] = " [verified]"


def _default_verify_retry() -> RetryPolicy:
    # Fixed delay between reads; only "not visible yet" is worth another look.
    return RetryPolicy(
        max_attempts=5, base_delay=1.0, multiplier=1.0, retryable_signatures=(NOT_VISIBLE,)
    )


@dataclass(frozen=True, slots=True)
class VerificationPolicy:
    settle_delay: float = 0.5
    retry: RetryPolicy = field(default_factory=_default_verify_retry)


@dataclass(slots=True)
class Verifier:
    """Confirm presence (ADD) or absence (REMOVE) of each successfully mutated member.

    Outcomes that did not succeed pass through untouched. A success that never becomes
    visible is downgraded to ERROR.
    """

    platform: AdsPlatform
    policy: VerificationPolicy = field(default_factory=VerificationPolicy)
    sleep: Sleep = time.sleep

    def verify_all(self, outcomes: Iterable[ExecutionOutcome]) -> list[VerifiedOutcome]:
        verified = [self._verify_isolated(outcome) for outcome in outcomes]
        failed = sum(
            1
            for item in verified
            if item.status is OutcomeStatus.ERROR and item.outcome.status is OutcomeStatus.SUCCESS
        )
        if failed:
            log.warning("%d executed operation(s) failed post-verification", failed)
        return verified

    def _verify_isolated(self, outcome: ExecutionOutcome) -> VerifiedOutcome:
        try:
            return self.verify(outcome)
        except Exception as exc:
            log.exception("Unexpected failure verifying %r", outcome.operation.member_key)
            return VerifiedOutcome(
                outcome=outcome,
                status=OutcomeStatus.ERROR,
                message=f"{VERIFY_FAILED_MESSAGE}: {exc}",
            )

    def verify(self, outcome: ExecutionOutcome) -> VerifiedOutcome:
        if outcome.status is not OutcomeStatus.SUCCESS:
            return VerifiedOutcome(outcome=outcome, status=outcome.status, message=outcome.message)

        operation = outcome.operation
        self.sleep(self.policy.settle_delay)
        attempted = run_with_retry(
            lambda: self._check(operation),
            self.policy.retry,
            failure_of=lambda confirmed: None if confirmed else NOT_VISIBLE,
            sleep=self.sleep,
            describe=f"verify {operation.action} {operation.member_key!r}",
        )
        if attempted.ok:
            if attempted.attempts > 1:
                log.info("Post-verify confirmed after %d attempt(s)", attempted.attempts)
            return VerifiedOutcome(
                outcome=outcome,
                status=OutcomeStatus.SUCCESS,
                message=outcome.message + VERIFIED_SUFFIX,
                verified=True,
                verify_attempts=attempted.attempts,
            )
        log.warning(
            "Post-verify failed for %s of %r in %s (%d attempt(s))",
            operation.action,
            operation.member_key,
            operation.sub_collection.name,
            attempted.attempts,
        )
        return VerifiedOutcome(
            outcome=outcome,
            status=OutcomeStatus.ERROR,
            message=VERIFY_FAILED_MESSAGE,
            verify_attempts=attempted.attempts,
        )

    def _check(self, operation: Operation) -> bool:
        kind = operation.row.kind
        field_type = operation.field_type if kind is MemberKind.TEXT else None
        try:
            members = self.platform.list_members(
                operation.sub_collection.sub_collection_id, kind, field_type
            )
        except PlatformError as exc:
            log.debug("Verification read failed: %s", exc)
            return False
        if kind is MemberKind.TEXT:
            present = any(member.text == operation.member_key for member in members)
        else:
            present = any(member.asset_id == operation.member_key for member in members)
        return present if operation.action is Action.ADD else not present


__all__ = [
    "VERIFIED_SUFFIX",
    "VERIFY_FAILED_MESSAGE",
    "VerificationPolicy",
    "Verifier",
]
