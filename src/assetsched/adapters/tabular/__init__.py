"""CSV adapters for schedule input and report output."""

from __future__ import annotations

from .reader import CsvScheduleSource, parse_date
from .schema import REPORT_HEADER, ScheduleRowPayload, required_columns
from .writer import CsvReportSink

__all__ = [
    "REPORT_HEADER",
    "CsvReportSink",
    "CsvScheduleSource",
    "ScheduleRowPayload",
    "parse_date",
    "required_columns",
]
