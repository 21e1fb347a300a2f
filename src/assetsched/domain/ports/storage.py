"""Ports for schedule input, report output and run state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from assetsched.domain.types import MemberKind, ReportRow, ScheduleRow


class StructuralError(ValueError):
    """An input source lacks required columns; fatal for that source only."""

    def __init__(self, source: str, missing: Sequence[str]) -> None:
        self.source = source
        self.missing = tuple(missing)
        super().__init__(f"{source}: missing required column(s): {', '.join(self.missing)}")


@runtime_checkable
class ScheduleSource(Protocol):
    """Reads the schedule rows of one member kind."""

    kind: MemberKind

    def read_rows(self) -> list[ScheduleRow]: ...


@runtime_checkable
class ReportSink(Protocol):
    def write_preview(self, rows: Sequence[ReportRow]) -> None: ...

    def clear_preview(self) -> None: ...

    def append_results(self, rows: Sequence[ReportRow]) -> None: ...


@dataclass(frozen=True, slots=True)
class RunRecord:
    """Summary of a finished run, persisted next to the fingerprint."""

    finished_at: datetime
    outcome: str
    fingerprint: str | None
    summary: str


@runtime_checkable
class RunStateStore(Protocol):
    def load_fingerprint(self) -> str | None: ...

    def save_fingerprint(self, fingerprint: str) -> None: ...

    def record_run(self, record: RunRecord) -> None: ...


__all__ = ["ReportSink", "RunRecord", "RunStateStore", "ScheduleSource", "StructuralError"]
