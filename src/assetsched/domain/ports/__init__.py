"""Domain port definitions for adapters."""

from __future__ import annotations

from .platform import (
    AdsPlatform,
    CreateTextMember,
    LinkMember,
    Mutation,
    MutationResult,
    PlatformError,
    UnlinkMember,
)
from .storage import ReportSink, RunRecord, RunStateStore, ScheduleSource, StructuralError

__all__ = [
    "AdsPlatform",
    "CreateTextMember",
    "LinkMember",
    "Mutation",
    "MutationResult",
    "PlatformError",
    "ReportSink",
    "RunRecord",
    "RunStateStore",
    "ScheduleSource",
    "StructuralError",
    "UnlinkMember",
]
