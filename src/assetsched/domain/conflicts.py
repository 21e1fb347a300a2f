"""Cross-row add/remove conflict detection."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .types import Action, VerdictStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .types import RowId, ScheduleSlot, ValidationVerdict

log = getLogger(__name__)

CONFLICT_MESSAGE: Final[str] = "ADD and REMOVE scheduled for the same hour (across rows)"


@dataclass(frozen=True, slots=True)
class ConflictResult:
    verdicts: tuple[ValidationVerdict, ...]
    conflict_count: int = 0
    escalated_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(slots=True)
class _SlotClaims:
    adds: list[ValidationVerdict] = field(default_factory=list)
    removes: list[ValidationVerdict] = field(default_factory=list)

    def add_rows(self) -> set[RowId]:
        return {verdict.row.row_id for verdict in self.adds}

    def remove_rows(self) -> set[RowId]:
        return {verdict.row.row_id for verdict in self.removes}

    def crosses_rows(self) -> bool:
        if not self.adds or not self.removes:
            return False
        # Same-row add+remove is a self-conflict and already an ERROR upstream.
        return self.add_rows() != self.remove_rows()


def _conflict_message(verdict: ValidationVerdict) -> str:
    # An earlier state-check error stays in front of the conflict.
    if verdict.status is VerdictStatus.ERROR and verdict.message:
        return f"{verdict.message}; {CONFLICT_MESSAGE}"
    return CONFLICT_MESSAGE


def detect_conflicts(verdicts: Iterable[ValidationVerdict]) -> ConflictResult:
    """Escalate every verdict taking part in a cross-row add/remove clash to ERROR.

    Every verdict bound to a sub-collection participates, including those that failed
    a state check: an ADD that passed because the member is absent must not run while
    another row removes that member in the same hour. Verdicts are grouped by schedule
    slot (collection, sub-collection, member, date and hour), so member text containing
    any separator character can never alias another member.
    """

    ordered = tuple(verdicts)
    claims: dict[ScheduleSlot, _SlotClaims] = defaultdict(_SlotClaims)
    for verdict in ordered:
        slot = verdict.slot
        if slot is None or verdict.action is None:
            continue
        bucket = claims[slot]
        if verdict.action is Action.ADD:
            bucket.adds.append(verdict)
        else:
            bucket.removes.append(verdict)

    escalated: set[int] = set()
    conflict_count = 0
    for slot, bucket in claims.items():
        if not bucket.crosses_rows():
            continue
        conflict_count += 1
        participants = [*bucket.adds, *bucket.removes]
        log.warning(
            "Add/remove conflict on %s member %r in %s at %s %02d:00 -> %d verdict(s) escalated",
            slot.member.kind,
            slot.member.key,
            slot.sub_collection_id,
            slot.scheduled_date.isoformat(),
            slot.hour,
            len(participants),
        )
        escalated.update(verdict.verdict_id for verdict in participants)

    if not escalated:
        return ConflictResult(verdicts=ordered)
    updated = tuple(
        verdict.escalate(_conflict_message(verdict))
        if verdict.verdict_id in escalated
        else verdict
        for verdict in ordered
    )
    return ConflictResult(
        verdicts=updated, conflict_count=conflict_count, escalated_ids=frozenset(escalated)
    )


__all__ = ["CONFLICT_MESSAGE", "ConflictResult", "detect_conflicts"]
