"""CSV report sink: a preview file rewritten per run and an append-only results log."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .schema import REPORT_HEADER

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from assetsched.domain.types import ReportRow

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvReportSink:
    preview_path: Path
    results_path: Path
    encoding: str = "utf-8"

    def write_preview(self, rows: Sequence[ReportRow]) -> None:
        self.preview_path.parent.mkdir(parents=True, exist_ok=True)
        with self.preview_path.open("w", newline="", encoding=self.encoding) as handle:
            writer = csv.writer(handle)
            writer.writerow(REPORT_HEADER)
            writer.writerows(row.as_list() for row in rows)
        log.info("Wrote %d preview row(s) to %s", len(rows), self.preview_path)

    def clear_preview(self) -> None:
        """Leave only the header in the preview file."""

        self.write_preview(())

    def append_results(self, rows: Sequence[ReportRow]) -> None:
        if not rows:
            return
        self.results_path.parent.mkdir(parents=True, exist_ok=True)
        needs_header = not self.results_path.exists() or self.results_path.stat().st_size == 0
        with self.results_path.open("a", newline="", encoding=self.encoding) as handle:
            writer = csv.writer(handle)
            if needs_header:
                writer.writerow(REPORT_HEADER)
            writer.writerows(row.as_list() for row in rows)
        log.info("Appended %d result row(s) to %s", len(rows), self.results_path)


__all__ = ["CsvReportSink"]
