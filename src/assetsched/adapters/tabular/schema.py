"""Column layout of the schedule and report CSV files."""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from assetsched.domain.types import MemberKind

REPORT_HEADER: Final[tuple[str, ...]] = (
    "Timestamp",
    "Campaign",
    "Asset Group",
    "Asset Type",
    "Text/Asset ID",
    "All Scheduled Actions",
    "Next Action|Executed Action",
    "Status",
    "Message",
)

_SHARED_COLUMNS: Final[tuple[str, ...]] = (
    "Campaign Name",
    "Asset Group Name",
    "Add Date",
    "Add Hour",
    "Remove Date",
    "Remove Hour",
)

# Member type and member key columns differ per source.
MEMBER_COLUMNS: Final[dict[MemberKind, tuple[str, str]]] = {
    MemberKind.TEXT: ("Text Type", "Text"),
    MemberKind.IMAGE: ("Image Type", "Asset ID"),
}


def required_columns(kind: MemberKind) -> tuple[str, ...]:
    type_column, key_column = MEMBER_COLUMNS[kind]
    return (*_SHARED_COLUMNS[:2], type_column, key_column, *_SHARED_COLUMNS[2:])


class ScheduleRowPayload(BaseModel):
    """One CSV record after column normalisation, every cell still raw text."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, frozen=True)

    campaign_name: str = Field(default="", alias="Campaign Name")
    asset_group_name: str = Field(default="", alias="Asset Group Name")
    member_type: str = ""
    member_key: str = ""
    add_date: str = Field(default="", alias="Add Date")
    add_hour: str = Field(default="", alias="Add Hour")
    remove_date: str = Field(default="", alias="Remove Date")
    remove_hour: str = Field(default="", alias="Remove Hour")

    @classmethod
    def from_record(cls, record: dict[str, str | None], kind: MemberKind) -> ScheduleRowPayload:
        type_column, key_column = MEMBER_COLUMNS[kind]
        values = {key: value or "" for key, value in record.items() if key}
        values["member_type"] = values.pop(type_column, "")
        values["member_key"] = values.pop(key_column, "")
        return cls.model_validate(values)


__all__ = [
    "MEMBER_COLUMNS",
    "REPORT_HEADER",
    "ScheduleRowPayload",
    "required_columns",
]
