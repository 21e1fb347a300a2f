"""Value types shared by every stage of the scheduling pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date


class Action(StrEnum):
    """Operation a schedule row asks for."""

    ADD = "ADD"
    REMOVE = "REMOVE"


class NextAction(StrEnum):
    """Closest pending operation of a row, used for preview validation."""

    ADD = "ADD"
    REMOVE = "REMOVE"
    AMBIGUOUS = "ADD+REMOVE"

    @property
    def action(self) -> Action | None:
        if self is NextAction.AMBIGUOUS:
            return None
        return Action(self.value)


class VerdictStatus(StrEnum):
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def executable(self) -> bool:
        return self is not VerdictStatus.ERROR


_SEVERITY: Final[dict[VerdictStatus, int]] = {
    VerdictStatus.OK: 0,
    VerdictStatus.WARNING: 1,
    VerdictStatus.ERROR: 2,
}


def worst_status(statuses: Iterable[VerdictStatus]) -> VerdictStatus:
    """Return the most severe status, ``OK`` for an empty input."""

    return max(statuses, key=lambda status: status.severity, default=VerdictStatus.OK)


class OutcomeStatus(StrEnum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class MemberKind(StrEnum):
    """Input source a row came from; each source has its own member shape."""

    TEXT = "text"
    IMAGE = "image"


class FieldType(StrEnum):
    """Slot a member occupies inside a sub-collection."""

    HEADLINE = "HEADLINE"
    LONG_HEADLINE = "LONG_HEADLINE"
    DESCRIPTION = "DESCRIPTION"
    MARKETING_IMAGE = "MARKETING_IMAGE"
    SQUARE_MARKETING_IMAGE = "SQUARE_MARKETING_IMAGE"
    PORTRAIT_MARKETING_IMAGE = "PORTRAIT_MARKETING_IMAGE"
    TALL_PORTRAIT_MARKETING_IMAGE = "TALL_PORTRAIT_MARKETING_IMAGE"


TEXT_FIELD_TYPES: Final[frozenset[FieldType]] = frozenset(
    {FieldType.HEADLINE, FieldType.LONG_HEADLINE, FieldType.DESCRIPTION}
)
IMAGE_FIELD_TYPES: Final[frozenset[FieldType]] = frozenset(
    {
        FieldType.MARKETING_IMAGE,
        FieldType.SQUARE_MARKETING_IMAGE,
        FieldType.PORTRAIT_MARKETING_IMAGE,
        FieldType.TALL_PORTRAIT_MARKETING_IMAGE,
    }
)

# Hours used for keys and reporting when a row leaves the hour blank.
DEFAULT_ACTION_HOUR: Final[dict[Action, int]] = {Action.ADD: 0, Action.REMOVE: 23}

ALL_SUB_COLLECTIONS_LABEL: Final[str] = "(all groups)"


@dataclass(frozen=True, slots=True)
class RowId:
    """Stable identity of an input row: its source and 1-based line number."""

    kind: MemberKind
    row_number: int

    def __str__(self) -> str:
        return f"{self.kind.value}#{self.row_number}"


@dataclass(frozen=True, slots=True)
class ScheduleRow:
    """One input record, immutable once read.

    ``sub_collection`` is blank when the row targets every eligible sub-collection of
    its collection. ``member_type`` keeps the declared type exactly as written;
    validation decides whether it is usable. Hour fields stay raw text so that
    malformed values surface as verdict errors instead of being dropped at read time.
    """

    row_number: int
    kind: MemberKind
    collection: str
    member_type: str
    member_key: str
    sub_collection: str = ""
    add_date: date | None = None
    add_hour: str = ""
    remove_date: date | None = None
    remove_hour: str = ""
    input_errors: tuple[str, ...] = ()

    @property
    def row_id(self) -> RowId:
        return RowId(self.kind, self.row_number)

    @property
    def targets_all_sub_collections(self) -> bool:
        return not self.sub_collection.strip()

    @property
    def sub_collection_label(self) -> str:
        return self.sub_collection or ALL_SUB_COLLECTIONS_LABEL

    def date_for(self, action: Action) -> date | None:
        return self.add_date if action is Action.ADD else self.remove_date

    def hour_text_for(self, action: Action) -> str:
        return self.add_hour if action is Action.ADD else self.remove_hour

    def scheduled_actions(self) -> tuple[Action, ...]:
        return tuple(action for action in Action if self.date_for(action) is not None)


@dataclass(frozen=True, slots=True)
class ResolvedAction:
    """A row operation that is executable right now.

    ``hour`` is ``None`` when the row uses the default window for the action.
    """

    row: ScheduleRow
    action: Action
    scheduled_date: date
    hour: int | None = None

    @property
    def effective_hour(self) -> int:
        return DEFAULT_ACTION_HOUR[self.action] if self.hour is None else self.hour


@dataclass(frozen=True, slots=True)
class MemberIdentity:
    """Logical identity of a member, independent of which row declared it.

    Text members are identified by slot and exact payload; image members by their
    numeric platform id alone.
    """

    kind: MemberKind
    key: str
    field_type: FieldType | None = None

    @classmethod
    def for_row(cls, row: ScheduleRow) -> MemberIdentity:
        if row.kind is MemberKind.TEXT:
            try:
                field_type: FieldType | None = FieldType(row.member_type.strip().upper())
            except ValueError:
                field_type = None
            return cls(kind=row.kind, key=row.member_key, field_type=field_type)
        return cls(kind=row.kind, key=row.member_key)


@dataclass(frozen=True, slots=True)
class ScheduleSlot:
    """Where and when an operation lands; the grouping key for conflict detection."""

    collection: str
    sub_collection_id: str
    member: MemberIdentity
    scheduled_date: date
    hour: int


@dataclass(frozen=True, slots=True)
class OperationKey:
    """Identity of one concrete operation; the grouping key for deduplication."""

    slot: ScheduleSlot
    action: Action


@dataclass(frozen=True, slots=True)
class SubCollectionRef:
    sub_collection_id: str
    name: str


@dataclass(frozen=True, slots=True)
class ValidationVerdict:
    """Outcome of validating one operation against one sub-collection.

    ``verdict_id`` is assigned at creation and never re-derived; later stages refer to
    verdicts by it. ``sub_collection`` is ``None`` when validation failed before any
    target sub-collection could be resolved.
    """

    verdict_id: int
    row: ScheduleRow
    status: VerdictStatus
    message: str
    timestamp: str
    next_action: str
    scheduled: str
    in_window: bool
    action: Action | None = None
    scheduled_date: date | None = None
    hour: int | None = None
    sub_collection: SubCollectionRef | None = None
    field_type: FieldType | None = None
    link_id: str | None = None

    @property
    def sub_collection_name(self) -> str:
        if self.sub_collection is not None:
            return self.sub_collection.name
        return self.row.sub_collection_label

    @property
    def slot(self) -> ScheduleSlot | None:
        if self.sub_collection is None or self.scheduled_date is None or self.hour is None:
            return None
        return ScheduleSlot(
            collection=self.row.collection,
            sub_collection_id=self.sub_collection.sub_collection_id,
            member=MemberIdentity.for_row(self.row),
            scheduled_date=self.scheduled_date,
            hour=self.hour,
        )

    @property
    def operation_key(self) -> OperationKey | None:
        slot = self.slot
        if slot is None or self.action is None:
            return None
        return OperationKey(slot=slot, action=self.action)

    def escalate(self, message: str) -> ValidationVerdict:
        return replace(self, status=VerdictStatus.ERROR, message=message)


@dataclass(frozen=True, slots=True)
class Operation:
    """A validated, in-window operation ready for execution."""

    verdict_id: int
    row: ScheduleRow
    action: Action
    key: OperationKey
    sub_collection: SubCollectionRef
    field_type: FieldType
    scheduled: str
    link_id: str | None = None

    @property
    def member_key(self) -> str:
        return self.row.member_key


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    operation: Operation
    status: OutcomeStatus
    message: str
    timestamp: str
    attempts: int = 1


@dataclass(frozen=True, slots=True)
class VerifiedOutcome:
    """Execution outcome after read-after-write confirmation.

    ``verified`` is true only when the platform independently confirmed the result.
    """

    outcome: ExecutionOutcome
    status: OutcomeStatus
    message: str
    verified: bool = False
    verify_attempts: int = 0

    @property
    def operation(self) -> Operation:
        return self.outcome.operation


@dataclass(frozen=True, slots=True)
class ReportRow:
    """One reportable output line (preview or result)."""

    timestamp: str
    collection: str
    sub_collection: str
    member_type: str
    member_key: str
    scheduled_actions: str
    action: str
    status: str
    message: str
    row_id: RowId | None = field(default=None, compare=False)

    def as_list(self) -> list[str]:
        return [
            self.timestamp,
            self.collection,
            self.sub_collection,
            self.member_type,
            self.member_key,
            self.scheduled_actions,
            self.action,
            self.status,
            self.message,
        ]
