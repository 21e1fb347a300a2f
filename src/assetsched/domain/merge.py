"""Merge window validation verdicts with verified execution outcomes into report rows."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .types import MemberKind, ReportRow, VerdictStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .deduplication import DeduplicationResult
    from .types import OperationKey, ValidationVerdict, VerifiedOutcome

log = getLogger(__name__)


def _member_type_label(verdict: ValidationVerdict) -> str:
    declared = verdict.row.member_type.strip()
    return declared.upper() if verdict.row.kind is MemberKind.TEXT else declared


def verdict_report_row(
    verdict: ValidationVerdict, *, status: str | None = None, message: str | None = None
) -> ReportRow:
    return ReportRow(
        timestamp=verdict.timestamp,
        collection=verdict.row.collection,
        sub_collection=verdict.sub_collection_name,
        member_type=_member_type_label(verdict),
        member_key=verdict.row.member_key,
        scheduled_actions=verdict.scheduled,
        action=verdict.next_action,
        status=status if status is not None else verdict.status.value,
        message=message if message is not None else verdict.message,
        row_id=verdict.row.row_id,
    )


def preview_rows(verdicts: Iterable[ValidationVerdict]) -> list[ReportRow]:
    return [verdict_report_row(verdict) for verdict in verdicts if not verdict.in_window]


def merge_results(
    window_verdicts: Sequence[ValidationVerdict],
    verified: Iterable[VerifiedOutcome],
    *,
    deduplication: DeduplicationResult | None = None,
) -> list[ReportRow]:
    """Produce one result row per window verdict.

    ERROR verdicts were never executed and keep their validation message. OK and
    WARNING verdicts take the verified status of the operation that ran for them:
    their own, or the one they were deduplicated into. Anything left unmatched keeps
    its validation status.
    """

    by_verdict: dict[int, VerifiedOutcome] = {}
    by_key: dict[OperationKey, VerifiedOutcome] = {}
    for outcome in verified:
        by_verdict[outcome.operation.verdict_id] = outcome
        by_key.setdefault(outcome.operation.key, outcome)

    rows: list[ReportRow] = []
    unmatched = 0
    for verdict in window_verdicts:
        if verdict.status is VerdictStatus.ERROR:
            rows.append(verdict_report_row(verdict))
            continue
        verdict_id = verdict.verdict_id
        if deduplication is not None:
            verdict_id = deduplication.representative_for(verdict_id)
        match = by_verdict.get(verdict_id)
        key = verdict.operation_key
        if match is None and key is not None:
            match = by_key.get(key)
        if match is None:
            unmatched += 1
            rows.append(verdict_report_row(verdict))
            continue
        rows.append(verdict_report_row(verdict, status=match.status.value, message=match.message))

    if unmatched:
        log.warning("%d executable window verdict(s) had no execution outcome", unmatched)
    return rows


__all__ = ["merge_results", "preview_rows", "verdict_report_row"]
