"""Reusable fakes and builders for scheduling pipeline tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from assetsched.domain.catalog import (
    CatalogSnapshot,
    LinkedMember,
    MediaDetails,
    SubCollection,
    SubCollectionState,
)
from assetsched.domain.ports.platform import (
    AdsPlatform,
    CreateTextMember,
    LinkMember,
    MutationResult,
    UnlinkMember,
)
from assetsched.domain.ports.storage import ReportSink, RunRecord, RunStateStore
from assetsched.domain.run_context import RunContext
from assetsched.domain.types import (
    IMAGE_FIELD_TYPES,
    TEXT_FIELD_TYPES,
    Action,
    FieldType,
    MemberKind,
    ScheduleRow,
    SubCollectionRef,
    ValidationVerdict,
    VerdictStatus,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from assetsched.domain.ports.platform import Mutation
    from assetsched.domain.types import ReportRow

TODAY = date(2025, 3, 10)
CUSTOMER = "customers/1"


def make_context(
    hour: int = 10, minute: int = 15, *, day: date = TODAY, timezone: str = "UTC"
) -> RunContext:
    zone = ZoneInfo(timezone)
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
    return RunContext.create(timezone, clock=lambda: local.astimezone(UTC))


def text_row(
    text: str = "Shop Now",
    *,
    row_number: int = 2,
    collection: str = "Spring Sale",
    sub_collection: str = "Group A",
    member_type: str = "HEADLINE",
    add_date: date | None = None,
    add_hour: str = "",
    remove_date: date | None = None,
    remove_hour: str = "",
    input_errors: tuple[str, ...] = (),
) -> ScheduleRow:
    return ScheduleRow(
        row_number=row_number,
        kind=MemberKind.TEXT,
        collection=collection,
        sub_collection=sub_collection,
        member_type=member_type,
        member_key=text,
        add_date=add_date,
        add_hour=add_hour,
        remove_date=remove_date,
        remove_hour=remove_hour,
        input_errors=input_errors,
    )


def image_row(
    asset_id: str = "555",
    *,
    row_number: int = 2,
    member_type: str = "HORIZONTAL",
    add_date: date | None = None,
    add_hour: str = "",
    remove_date: date | None = None,
    remove_hour: str = "",
) -> ScheduleRow:
    row = text_row(
        asset_id,
        row_number=row_number,
        member_type=member_type,
        add_date=add_date,
        add_hour=add_hour,
        remove_date=remove_date,
        remove_hour=remove_hour,
    )
    return replace(row, kind=MemberKind.IMAGE)


def group_id(name: str) -> str:
    return f"{CUSTOMER}/assetGroups/{name.replace(' ', '_')}"


def make_verdict(
    verdict_id: int,
    row: ScheduleRow,
    action: Action,
    *,
    status: VerdictStatus = VerdictStatus.OK,
    group: str | None = "Group A",
    hour: int = 10,
    in_window: bool = True,
    field_type: FieldType | None = FieldType.HEADLINE,
    link_id: str | None = None,
) -> ValidationVerdict:
    return ValidationVerdict(
        verdict_id=verdict_id,
        row=row,
        status=status,
        message="OK" if status is VerdictStatus.OK else status.value.lower(),
        timestamp="2025-03-10 10:05:00",
        next_action=action.value,
        scheduled=f"{TODAY.isoformat()} {hour:02d}:00-{hour:02d}:59",
        in_window=in_window,
        action=action,
        scheduled_date=TODAY,
        hour=hour,
        sub_collection=SubCollectionRef(group_id(group), group) if group is not None else None,
        field_type=field_type,
        link_id=link_id,
    )


def headlines(count: int, *, prefix: str = "Headline") -> list[str]:
    return [f"{prefix} {index}" for index in range(1, count + 1)]


@dataclass
class FakePlatform:
    """In-memory platform: campaigns, groups, links and text assets, mutated in place."""

    campaigns: dict[str, str] = field(default_factory=dict)
    groups: dict[str, SubCollection] = field(default_factory=dict)
    links: dict[str, list[LinkedMember]] = field(default_factory=dict)
    media: dict[str, MediaDetails] = field(default_factory=dict)
    text_assets: dict[str, str] = field(default_factory=dict)
    timezone: str = "UTC"
    mutations: list[Mutation] = field(default_factory=list)
    scripted_results: list[MutationResult | Exception] = field(default_factory=list)
    read_failures: list[Exception] = field(default_factory=list)
    drop_writes: bool = False
    snapshot_calls: int = 0
    _next_id: int = 1000

    def add_campaign(self, name: str, campaign_id: str = "1") -> None:
        self.campaigns[name] = campaign_id

    def add_group(
        self,
        name: str,
        *,
        campaign: str = "Spring Sale",
        placeholder: bool = False,
        texts: dict[FieldType, Sequence[str]] | None = None,
        images: dict[FieldType, Sequence[str]] | None = None,
    ) -> str:
        if campaign not in self.campaigns:
            self.add_campaign(campaign, str(len(self.campaigns) + 1))
        sub_collection_id = group_id(name)
        self.groups[sub_collection_id] = SubCollection(
            sub_collection_id=sub_collection_id,
            name=name,
            collection_id=self.campaigns[campaign],
            collection_name=campaign,
            placeholder=placeholder,
        )
        members = self.links.setdefault(sub_collection_id, [])
        for field_type, values in (texts or {}).items():
            for value in values:
                members.append(
                    self._link(sub_collection_id, self._text_asset(value), field_type, value)
                )
        for field_type, values in (images or {}).items():
            for value in values:
                members.append(
                    self._link(sub_collection_id, self.image_member_id(value), field_type)
                )
        return sub_collection_id

    def add_image(
        self, asset_id: str, width: int, height: int, asset_type: str = "IMAGE"
    ) -> None:
        self.media[asset_id] = MediaDetails(
            asset_id=asset_id, asset_type=asset_type, width=width, height=height
        )

    # Port

    def account_timezone(self) -> str:
        return self.timezone

    def query_snapshot(
        self, collection_names: Sequence[str], image_ids: Sequence[str] = ()
    ) -> CatalogSnapshot:
        self.snapshot_calls += 1
        wanted = {self.campaigns[name] for name in collection_names if name in self.campaigns}
        return CatalogSnapshot(
            collection_ids={
                name: cid for name, cid in self.campaigns.items() if name in collection_names
            },
            sub_collections={
                gid: SubCollectionState(sub_collection=group, members=tuple(self.links[gid]))
                for gid, group in self.groups.items()
                if group.collection_id in wanted
            },
            media={
                asset_id: self.media[asset_id] for asset_id in image_ids if asset_id in self.media
            },
        )

    def list_members(
        self, sub_collection_id: str, kind: MemberKind, field_type: FieldType | None = None
    ) -> list[LinkedMember]:
        if self.read_failures:
            raise self.read_failures.pop(0)
        allowed = TEXT_FIELD_TYPES if kind is MemberKind.TEXT else IMAGE_FIELD_TYPES
        return [
            member
            for member in self.links.get(sub_collection_id, [])
            if member.field_type in allowed
            and (field_type is None or member.field_type is field_type)
        ]

    def find_text_member(self, text: str) -> str | None:
        return self.text_assets.get(text)

    def image_member_id(self, asset_id: str) -> str:
        return f"{CUSTOMER}/assets/{asset_id}"

    def mutate(self, mutation: Mutation) -> MutationResult:
        self.mutations.append(mutation)
        if self.scripted_results:
            scripted = self.scripted_results.pop(0)
            if isinstance(scripted, Exception):
                raise scripted
            if not scripted.success:
                return scripted
        if self.drop_writes:
            return MutationResult(success=True)
        match mutation:
            case CreateTextMember(text=text):
                return MutationResult(success=True, resource_name=self._text_asset(text))
            case LinkMember(sub_collection_id=gid, member_id=member_id, field_type=field_type):
                text = next(
                    (value for value, rn in self.text_assets.items() if rn == member_id), None
                )
                link = self._link(gid, member_id, field_type, text)
                self.links.setdefault(gid, []).append(link)
                return MutationResult(success=True, resource_name=link.link_id)
            case UnlinkMember(link_id=link_id):
                for gid, members in self.links.items():
                    self.links[gid] = [member for member in members if member.link_id != link_id]
                return MutationResult(success=True, resource_name=link_id)

    def _text_asset(self, text: str) -> str:
        if text not in self.text_assets:
            self._next_id += 1
            self.text_assets[text] = f"{CUSTOMER}/assets/{self._next_id}"
        return self.text_assets[text]

    def _link(
        self, gid: str, member_id: str, field_type: FieldType, text: str | None = None
    ) -> LinkedMember:
        self._next_id += 1
        return LinkedMember(
            link_id=f"{gid}/links/{self._next_id}",
            member_id=member_id,
            field_type=field_type,
            text=text,
        )


@dataclass
class InMemorySink:
    preview: list[ReportRow] | None = None
    results: list[ReportRow] = field(default_factory=list)
    preview_writes: int = 0
    clears: int = 0

    def write_preview(self, rows: Sequence[ReportRow]) -> None:
        self.preview = list(rows)
        self.preview_writes += 1

    def clear_preview(self) -> None:
        self.preview = []
        self.clears += 1

    def append_results(self, rows: Sequence[ReportRow]) -> None:
        self.results.extend(rows)


@dataclass
class InMemoryStateStore:
    fingerprint: str | None = None
    runs: list[RunRecord] = field(default_factory=list)

    def load_fingerprint(self) -> str | None:
        return self.fingerprint

    def save_fingerprint(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint

    def record_run(self, record: RunRecord) -> None:
        self.runs.append(record)


def no_sleep(_seconds: float) -> None:
    return None


@dataclass
class RecordingSleep:
    delays: list[float] = field(default_factory=list)

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


if TYPE_CHECKING:
    _platform_check: AdsPlatform = FakePlatform()
    _sink_check: ReportSink = InMemorySink()
    _state_check: RunStateStore = InMemoryStateStore()
