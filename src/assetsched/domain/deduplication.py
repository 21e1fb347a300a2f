"""Turn executable verdicts into operations and collapse duplicates.

Responsibilities of this stage:
- keep only in-window verdicts that passed validation and conflict detection
- collapse operations identical in (collection, sub-collection, member, action, hour)
- map every dropped verdict to the verdict whose operation runs in its place
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .types import Operation

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .types import OperationKey, ValidationVerdict

log = getLogger(__name__)


@dataclass(slots=True)
class DeduplicationResult:
    """Surviving operations in input order, plus the duplicate bookkeeping."""

    operations: list[Operation] = field(default_factory=list[Operation])
    representative_by_verdict: dict[int, int] = field(default_factory=dict[int, int])

    @property
    def duplicate_count(self) -> int:
        return len(self.representative_by_verdict)

    def representative_for(self, verdict_id: int) -> int:
        return self.representative_by_verdict.get(verdict_id, verdict_id)


def plan_operations(verdicts: Iterable[ValidationVerdict]) -> list[Operation]:
    """Build operations for every executable, in-window verdict with a resolved target."""

    operations: list[Operation] = []
    for verdict in verdicts:
        if not verdict.in_window or not verdict.status.executable:
            continue
        key = verdict.operation_key
        if (
            key is None
            or verdict.action is None
            or verdict.sub_collection is None
            or verdict.field_type is None
        ):
            continue
        operations.append(
            Operation(
                verdict_id=verdict.verdict_id,
                row=verdict.row,
                action=verdict.action,
                key=key,
                sub_collection=verdict.sub_collection,
                field_type=verdict.field_type,
                scheduled=verdict.scheduled,
                link_id=verdict.link_id,
            )
        )
    return operations


def deduplicate_operations(operations: Sequence[Operation]) -> DeduplicationResult:
    """Keep the first occurrence of each operation key, in input order."""

    result = DeduplicationResult()
    first_by_key: dict[OperationKey, Operation] = {}
    for operation in operations:
        kept = first_by_key.get(operation.key)
        if kept is None:
            first_by_key[operation.key] = operation
            result.operations.append(operation)
            continue
        log.warning(
            "Duplicate %s of %s member %r in %s: row %s already covers it, skipping row %s",
            operation.action,
            operation.row.kind,
            operation.member_key,
            operation.sub_collection.name,
            kept.row.row_id,
            operation.row.row_id,
        )
        result.representative_by_verdict[operation.verdict_id] = kept.verdict_id
    return result


__all__ = [
    "DeduplicationResult",
    "deduplicate_operations",
    "plan_operations",
]
