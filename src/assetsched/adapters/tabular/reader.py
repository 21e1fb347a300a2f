"""Read schedule rows from the per-kind CSV input files."""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING, Final

from assetsched.domain.ports.storage import StructuralError
from assetsched.domain.types import ScheduleRow

from .schema import ScheduleRowPayload, required_columns

if TYPE_CHECKING:
    from pathlib import Path

    from assetsched.domain.types import MemberKind

log = getLogger(__name__)

_DATE_PREFIX: Final[re.Pattern[str]] = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T].*)?$")
# The header is line 1, so the first data row is line 2.
FIRST_DATA_ROW: Final[int] = 2


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` (a trailing time part is ignored)."""

    match = _DATE_PREFIX.match(value.strip())
    if match is None:
        raise ValueError(value)
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def _date_field(label: str, value: str, errors: list[str]) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        errors.append(f"Invalid {label}: '{value}'")
        return None


def to_schedule_row(
    payload: ScheduleRowPayload, *, kind: MemberKind, row_number: int
) -> ScheduleRow:
    errors: list[str] = []
    add_date = _date_field("Add Date", payload.add_date, errors)
    remove_date = _date_field("Remove Date", payload.remove_date, errors)
    return ScheduleRow(
        row_number=row_number,
        kind=kind,
        collection=payload.campaign_name,
        sub_collection=payload.asset_group_name,
        member_type=payload.member_type,
        member_key=payload.member_key,
        add_date=add_date,
        add_hour=payload.add_hour,
        remove_date=remove_date,
        remove_hour=payload.remove_hour,
        input_errors=tuple(errors),
    )


@dataclass(frozen=True, slots=True)
class CsvScheduleSource:
    """One input file; rows with a blank member key are skipped."""

    path: Path
    kind: MemberKind
    encoding: str = "utf-8-sig"

    def read_rows(self) -> list[ScheduleRow]:
        with self.path.open(newline="", encoding=self.encoding) as handle:
            reader = csv.DictReader(handle)
            header = [name.strip() for name in reader.fieldnames or ()]
            missing = [column for column in required_columns(self.kind) if column not in header]
            if missing:
                raise StructuralError(str(self.path), missing)
            reader.fieldnames = header

            rows: list[ScheduleRow] = []
            skipped = 0
            for row_number, record in enumerate(reader, start=FIRST_DATA_ROW):
                payload = ScheduleRowPayload.from_record(record, self.kind)
                if not payload.member_key:
                    skipped += 1
                    continue
                rows.append(to_schedule_row(payload, kind=self.kind, row_number=row_number))

        log.info(
            "Read %d %s row(s) from %s (%d blank skipped)",
            len(rows),
            self.kind.value,
            self.path,
            skipped,
        )
        return rows


__all__ = ["FIRST_DATA_ROW", "CsvScheduleSource", "parse_date", "to_schedule_row"]
