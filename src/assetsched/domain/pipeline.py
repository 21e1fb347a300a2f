"""Orchestrator for one scheduling run.

The pipeline composes the stages and the ports but does not prescribe concrete
adapters. Stage order: horizon filter, time windows, catalog snapshot, validation,
conflict detection, deduplication, execution, verification, merge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .conflicts import detect_conflicts
from .deduplication import deduplicate_operations, plan_operations
from .fingerprint import schedule_fingerprint
from .horizon import DEFAULT_HORIZON_DAYS, filter_by_horizon
from .merge import merge_results, preview_rows, verdict_report_row
from .ports.storage import RunRecord
from .time_windows import DEFAULT_WINDOWS, resolve_actions
from .types import MemberKind, OutcomeStatus, VerdictStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .catalog import CatalogSnapshot
    from .execution import Executor
    from .horizon import HorizonEntry
    from .ports.platform import AdsPlatform
    from .ports.storage import ReportSink, RunStateStore
    from .run_context import RunContext
    from .time_windows import WindowConfig, WindowResolution
    from .types import ReportRow, ScheduleRow, ValidationVerdict
    from .validation import Validator
    from .verification import Verifier

log = getLogger(__name__)


class RunOutcome(StrEnum):
    SKIPPED = "SKIPPED"
    EMPTY = "EMPTY"
    PREVIEW = "PREVIEW"
    EXECUTED = "EXECUTED"


@dataclass(slots=True)
class RunReport:
    """Counts and output rows of one run."""

    outcome: RunOutcome
    rows_read: int = 0
    in_horizon: int = 0
    in_window: int = 0
    ok: int = 0
    warnings: int = 0
    errors: int = 0
    conflicts: int = 0
    duplicates: int = 0
    executed: int = 0
    verified: int = 0
    failed: int = 0
    fingerprint: str | None = None
    preview_rows: list[ReportRow] = field(default_factory=list["ReportRow"])
    result_rows: list[ReportRow] = field(default_factory=list["ReportRow"])

    def summary(self) -> str:
        return (
            f"{self.outcome}: rows={self.rows_read} horizon={self.in_horizon} "
            f"window={self.in_window} ok={self.ok} warning={self.warnings} "
            f"error={self.errors} conflicts={self.conflicts} duplicates={self.duplicates} "
            f"executed={self.executed} verified={self.verified} failed={self.failed}"
        )


@dataclass(slots=True)
class SchedulePipeline:
    """Run every stage for a batch of schedule rows against the platform."""

    platform: AdsPlatform
    sink: ReportSink
    validator: Validator
    executor: Executor
    verifier: Verifier
    state: RunStateStore | None = None
    horizon_days: int = DEFAULT_HORIZON_DAYS
    windows: WindowConfig = DEFAULT_WINDOWS
    preview_only: bool = False

    def run(self, rows: Sequence[ScheduleRow], context: RunContext) -> RunReport:
        rows = [row for row in rows if row.member_key]
        log.info("Run at %s (%s): %d row(s) read", context.timestamp, context.timezone, len(rows))
        if not rows:
            self.sink.clear_preview()
            return self._finish(RunReport(outcome=RunOutcome.EMPTY), context)

        entries = filter_by_horizon(rows, context, days=self.horizon_days, windows=self.windows)
        if not entries:
            self.sink.clear_preview()
            report = RunReport(outcome=RunOutcome.EMPTY, rows_read=len(rows))
            return self._finish(report, context)

        resolutions = [
            resolve_actions(entry.row, context, windows=self.windows) for entry in entries
        ]
        in_window = sum(1 for resolution in resolutions if resolution.in_window)
        for resolution in resolutions:
            for reason in resolution.skipped:
                log.debug("Row %s: %s", resolution.row.row_id, reason)
        report = RunReport(
            outcome=RunOutcome.PREVIEW,
            rows_read=len(rows),
            in_horizon=len(entries),
            in_window=in_window,
            fingerprint=schedule_fingerprint(entry.row for entry in entries),
        )

        previous = self.state.load_fingerprint() if self.state is not None else None
        if previous == report.fingerprint and not in_window:
            log.info("Schedule unchanged and nothing in window; skipping run")
            report.outcome = RunOutcome.SKIPPED
            return self._finish(report, context)

        snapshot = self._snapshot(entries)
        verdicts = self._validate(resolutions, snapshot, context)
        conflicts = detect_conflicts(verdicts)
        verdicts = list(conflicts.verdicts)
        report.conflicts = conflicts.conflict_count
        self._count_statuses(report, verdicts)
        if self.state is not None and report.fingerprint is not None:
            self.state.save_fingerprint(report.fingerprint)

        report.preview_rows = preview_rows(verdicts)
        if report.preview_rows:
            self.sink.write_preview(report.preview_rows)

        window_verdicts = [verdict for verdict in verdicts if verdict.in_window]
        if not window_verdicts:
            return self._finish(report, context)

        deduplication = deduplicate_operations(plan_operations(window_verdicts))
        report.duplicates = deduplication.duplicate_count
        if self.preview_only:
            log.info(
                "Preview-only run: %d operation(s) not executed", len(deduplication.operations)
            )
            report.result_rows = [verdict_report_row(verdict) for verdict in window_verdicts]
            return self._finish(report, context)

        outcomes = self.executor.execute_all(deduplication.operations, context)
        verified = self.verifier.verify_all(outcomes)
        report.executed = len(verified)
        report.verified = sum(1 for item in verified if item.verified)
        report.failed = sum(1 for item in verified if item.status is OutcomeStatus.ERROR)

        report.result_rows = merge_results(
            window_verdicts, verified, deduplication=deduplication
        )
        self.sink.append_results(report.result_rows)
        report.outcome = RunOutcome.EXECUTED
        return self._finish(report, context)

    def _snapshot(self, entries: Sequence[HorizonEntry]) -> CatalogSnapshot:
        collections = sorted({entry.row.collection for entry in entries if entry.row.collection})
        image_ids = sorted(
            {
                entry.row.member_key
                for entry in entries
                if entry.row.kind is MemberKind.IMAGE and entry.row.member_key.isdigit()
            }
        )
        log.info(
            "Fetching catalog snapshot for %d collection(s), %d image member(s)",
            len(collections),
            len(image_ids),
        )
        return self.platform.query_snapshot(collections, image_ids)

    def _validate(
        self,
        resolutions: Sequence[WindowResolution],
        snapshot: CatalogSnapshot,
        context: RunContext,
    ) -> list[ValidationVerdict]:
        verdicts: list[ValidationVerdict] = []
        for resolution in resolutions:
            if not resolution.in_window:
                validation = self.validator.validate_preview(resolution.row, snapshot, context)
                verdicts.extend(validation.verdicts)
            elif resolution.self_conflict:
                validation = self.validator.validate_unresolvable(resolution, context)
                verdicts.extend(validation.verdicts)
            else:
                for action in resolution.actions:
                    validation = self.validator.validate_action(action, snapshot, context)
                    verdicts.extend(validation.verdicts)
                if resolution.hour_errors:
                    validation = self.validator.validate_hour_errors(resolution, context)
                    verdicts.extend(validation.verdicts)
        return verdicts

    @staticmethod
    def _count_statuses(report: RunReport, verdicts: Sequence[ValidationVerdict]) -> None:
        for verdict in verdicts:
            if verdict.status is VerdictStatus.OK:
                report.ok += 1
            elif verdict.status is VerdictStatus.WARNING:
                report.warnings += 1
            else:
                report.errors += 1

    def _finish(self, report: RunReport, context: RunContext) -> RunReport:
        log.info("Run finished: %s", report.summary())
        if self.state is not None:
            self.state.record_run(
                RunRecord(
                    finished_at=context.now,
                    outcome=report.outcome.value,
                    fingerprint=report.fingerprint,
                    summary=report.summary(),
                )
            )
        return report


__all__ = ["RunOutcome", "RunReport", "SchedulePipeline"]
