"""Apply surviving operations to the platform, one mutate call at a time."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .ports.platform import CreateTextMember, LinkMember, PlatformError, UnlinkMember
from .retry import MUTATION_RETRY, QUERY_RETRY, RetryPolicy, run_with_retry
from .types import Action, ExecutionOutcome, MemberKind, OutcomeStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .ports.platform import AdsPlatform, Mutation, MutationResult
    from .retry import Sleep
    from .run_context import RunContext
    from .types import Operation

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Pacing:
    """Delay inserted between consecutive mutations: ``fixed`` plus jitter in ``[0, jitter)``."""

    fixed: float = 0.75
    jitter: float = 0.25

    def next_delay(self, rng: random.Random) -> float:
        return self.fixed + rng.random() * self.jitter


class MemberResolutionError(RuntimeError):
    """The member resource an ADD needs could not be found or created."""


def _mutation_failure(result: MutationResult) -> str | None:
    return None if result.success else result.error_text


@dataclass(slots=True)
class Executor:
    """Run operations sequentially with retry on transient errors and pacing between them.

    Text members are resolved (looked up, else created) once per run and cached, so the
    same payload linked into several sub-collections is created at most once. A failed
    resolution is cached too and fails every operation that depends on it.
    """

    platform: AdsPlatform
    retry: RetryPolicy = MUTATION_RETRY
    query_retry: RetryPolicy = QUERY_RETRY
    pacing: Pacing = field(default_factory=Pacing)
    sleep: Sleep = time.sleep
    rng: random.Random = field(default_factory=random.Random)
    _text_members: dict[str, str | MemberResolutionError] = field(default_factory=dict)

    def execute_all(
        self, operations: Iterable[Operation], context: RunContext
    ) -> list[ExecutionOutcome]:
        outcomes: list[ExecutionOutcome] = []
        for index, operation in enumerate(operations):
            if index:
                self.sleep(self.pacing.next_delay(self.rng))
            try:
                outcome = self.execute(operation, context)
            except Exception as exc:
                log.exception(
                    "Unexpected failure in %s of %r", operation.action, operation.member_key
                )
                outcome = self._outcome(operation, context, OutcomeStatus.ERROR, f"Error: {exc}")
            outcomes.append(outcome)
        succeeded = sum(1 for outcome in outcomes if outcome.status is OutcomeStatus.SUCCESS)
        log.info("Executed %d operation(s): %d succeeded", len(outcomes), succeeded)
        return outcomes

    def execute(self, operation: Operation, context: RunContext) -> ExecutionOutcome:
        try:
            mutation = self._mutation_for(operation)
        except MemberResolutionError as exc:
            return self._outcome(operation, context, OutcomeStatus.ERROR, str(exc))

        attempted = run_with_retry(
            lambda: self.platform.mutate(mutation),
            self.retry,
            failure_of=_mutation_failure,
            sleep=self.sleep,
            describe=f"{operation.action} {operation.member_key!r}",
        )
        if attempted.ok:
            return self._outcome(
                operation,
                context,
                OutcomeStatus.SUCCESS,
                f"Executed (attempt {attempted.attempts})",
                attempts=attempted.attempts,
            )
        log.warning(
            "%s of %r in %s failed after %d attempt(s): %s",
            operation.action,
            operation.member_key,
            operation.sub_collection.name,
            attempted.attempts,
            attempted.error,
        )
        return self._outcome(
            operation,
            context,
            OutcomeStatus.ERROR,
            f"Error: {attempted.error}",
            attempts=attempted.attempts,
        )

    def _mutation_for(self, operation: Operation) -> Mutation:
        if operation.action is Action.REMOVE:
            if operation.link_id is None:
                raise MemberResolutionError("Nothing to unlink: member link is unknown")
            return UnlinkMember(link_id=operation.link_id)

        if operation.row.kind is MemberKind.TEXT:
            member_id = self._resolve_text_member(operation.member_key)
        else:
            member_id = self.platform.image_member_id(operation.member_key)
        return LinkMember(
            sub_collection_id=operation.sub_collection.sub_collection_id,
            member_id=member_id,
            field_type=operation.field_type,
        )

    def _resolve_text_member(self, text: str) -> str:
        cached = self._text_members.get(text)
        if isinstance(cached, MemberResolutionError):
            raise cached
        if cached is not None:
            return cached
        try:
            resource_name = self._find_or_create_text_member(text)
        except MemberResolutionError as exc:
            self._text_members[text] = exc
            raise
        self._text_members[text] = resource_name
        return resource_name

    def _find_or_create_text_member(self, text: str) -> str:
        found = run_with_retry(
            lambda: self.platform.find_text_member(text),
            self.query_retry,
            sleep=self.sleep,
            describe="text member lookup",
        )
        if not found.ok:
            raise MemberResolutionError(f"Text member lookup failed: {found.error}")
        if found.value:
            return found.value

        created = run_with_retry(
            lambda: self.platform.mutate(CreateTextMember(text=text)),
            self.retry,
            failure_of=_mutation_failure,
            sleep=self.sleep,
            describe="text member creation",
        )
        if not created.ok or created.value is None:
            raise MemberResolutionError(f"Text member creation failed: {created.error}")
        if created.value.resource_name:
            log.info("Created text member %s", created.value.resource_name)
            return created.value.resource_name

        # Created without a returned name: look it up once the write has landed.
        self.sleep(1.0)
        try:
            resource_name = self.platform.find_text_member(text)
        except PlatformError as exc:
            raise MemberResolutionError(f"Text member creation failed: {exc}") from exc
        if not resource_name:
            raise MemberResolutionError("Text member creation failed: created member not found")
        return resource_name

    def _outcome(
        self,
        operation: Operation,
        context: RunContext,
        status: OutcomeStatus,
        message: str,
        *,
        attempts: int = 1,
    ) -> ExecutionOutcome:
        return ExecutionOutcome(
            operation=operation,
            status=status,
            message=message,
            timestamp=context.timestamp,
            attempts=attempts,
        )


__all__ = ["Executor", "MemberResolutionError", "Pacing"]
