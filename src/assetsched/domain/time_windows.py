"""Minute-of-day windows that gate when a scheduled operation may execute.

Windows are half-open ``[start, end)`` intervals over the minutes of a day. A row
operation is executable only when its scheduled date is today and the current
minute falls inside its window: the custom hour ``H`` maps to ``[H*60, H*60+60)``,
a blank hour to the action's default window.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Final

from .types import DEFAULT_ACTION_HOUR, Action, NextAction, ResolvedAction

if TYPE_CHECKING:
    from datetime import date

    from .run_context import RunContext
    from .types import ScheduleRow

MINUTES_PER_DAY: Final[int] = 1440
SELF_CONFLICT_MESSAGE: Final[str] = "Add and remove scheduled in the same hour - not executable"

_HOUR_PATTERN = re.compile(r"^(\d{1,2})(?::00)?$")


class InvalidHourError(ValueError):
    """Raised when an hour cell is neither blank nor an hour of the day."""


def parse_hour(raw: str | None) -> int | None:
    """Parse an hour cell into 0-23, or ``None`` for a blank cell.

    Accepts ``10`` and ``10:00``; anything else raises :class:`InvalidHourError`.
    """

    text = (raw or "").strip()
    if not text:
        return None
    match = _HOUR_PATTERN.match(text)
    if match is None:
        raise InvalidHourError(
            f'Invalid hour format: "{text}". Expected 0-23 or HH:00 (e.g. 10 or 10:00).'
        )
    hour = int(match.group(1))
    if hour > 23:
        raise InvalidHourError(f'Invalid hour: "{text}". Expected 0-23.')
    return hour


@dataclass(frozen=True, slots=True)
class MinuteWindow:
    start: int
    end: int

    def __post_init__(self) -> None:
        if not 0 <= self.start < self.end <= MINUTES_PER_DAY:
            raise ValueError(f"Invalid minute window: [{self.start}, {self.end})")

    @classmethod
    def for_hour(cls, hour: int) -> MinuteWindow:
        return cls(hour * 60, hour * 60 + 60)

    def contains(self, minute_of_day: int) -> bool:
        return self.start <= minute_of_day < self.end

    def label(self) -> str:
        last = self.end - 1
        return f"{self.start // 60:02d}:{self.start % 60:02d}-{last // 60:02d}:{last % 60:02d}"


@dataclass(frozen=True, slots=True)
class WindowConfig:
    add: MinuteWindow = field(default_factory=lambda: MinuteWindow(0, 60))
    remove: MinuteWindow = field(default_factory=lambda: MinuteWindow(1380, 1440))

    def default_for(self, action: Action) -> MinuteWindow:
        return self.add if action is Action.ADD else self.remove

    def window_for(self, action: Action, hour: int | None) -> MinuteWindow:
        if hour is None:
            return self.default_for(action)
        return MinuteWindow.for_hour(hour)


DEFAULT_WINDOWS: Final[WindowConfig] = WindowConfig()


def effective_hour(row: ScheduleRow, action: Action) -> int:
    """Return the row's hour for ``action``, falling back to the default on blank or bad text."""

    try:
        hour = parse_hour(row.hour_text_for(action))
    except InvalidHourError:
        hour = None
    return DEFAULT_ACTION_HOUR[action] if hour is None else hour


def format_hour_range(scheduled_date: date, hour: int) -> str:
    return f"{scheduled_date.isoformat()} {hour:02d}:00-{hour:02d}:59"


def describe_schedule(row: ScheduleRow) -> str:
    """Render every scheduled operation of a row, e.g. ``ADD: ... | REMOVE: ...``."""

    parts: list[str] = []
    for action in row.scheduled_actions():
        scheduled_date = row.date_for(action)
        if scheduled_date is None:
            continue
        parts.append(f"{action}: {format_hour_range(scheduled_date, effective_hour(row, action))}")
    return " | ".join(parts)


def has_self_conflict(row: ScheduleRow) -> bool:
    """True when the row adds and removes on the same calendar day in the same hour."""

    if row.add_date is None or row.remove_date is None:
        return False
    if row.add_date != row.remove_date:
        return False
    return effective_hour(row, Action.ADD) == effective_hour(row, Action.REMOVE)


@dataclass(frozen=True, slots=True)
class WindowResolution:
    """Result of resolving one row against the current instant.

    ``actions`` holds zero, one or two entries. A self-conflicting row that would
    otherwise have been executable keeps ``in_window`` set but has no actions.
    ``hour_errors`` pairs each same-day action with the reason its hour text failed.
    """

    row: ScheduleRow
    actions: tuple[ResolvedAction, ...] = ()
    errors: tuple[str, ...] = ()
    hour_errors: tuple[tuple[Action, str], ...] = ()
    skipped: tuple[str, ...] = ()
    self_conflict: bool = False

    @property
    def in_window(self) -> bool:
        return bool(self.actions) or self.self_conflict


def resolve_actions(
    row: ScheduleRow,
    context: RunContext,
    *,
    windows: WindowConfig = DEFAULT_WINDOWS,
) -> WindowResolution:
    """Determine which operations of ``row`` are inside their window right now."""

    candidates: list[ResolvedAction] = []
    hour_errors: list[tuple[Action, str]] = []
    skipped: list[str] = []

    for action in Action:
        scheduled_date = row.date_for(action)
        if scheduled_date is None or scheduled_date != context.today:
            continue
        try:
            hour = parse_hour(row.hour_text_for(action))
        except InvalidHourError as exc:
            hour_errors.append((action, f"Invalid {action} hour: {exc}"))
            continue
        window = windows.window_for(action, hour)
        if window.contains(context.minute_of_day):
            candidates.append(ResolvedAction(row, action, scheduled_date, hour))
        else:
            skipped.append(f"{action} outside window ({window.label()})")

    errors = tuple(message for _, message in hour_errors)
    if candidates and has_self_conflict(row):
        return WindowResolution(
            row=row,
            errors=(*errors, SELF_CONFLICT_MESSAGE),
            hour_errors=tuple(hour_errors),
            skipped=tuple(skipped),
            self_conflict=True,
        )
    return WindowResolution(
        row=row,
        actions=tuple(candidates),
        errors=errors,
        hour_errors=tuple(hour_errors),
        skipped=tuple(skipped),
    )


def _hour_end(scheduled_date: date, hour: int) -> datetime:
    return datetime.combine(scheduled_date, time()) + timedelta(hours=hour + 1)


def closest_future_action(row: ScheduleRow, context: RunContext) -> NextAction | None:
    """Return which pending operation of ``row`` fires first, for preview purposes.

    Both candidates are compared by the end of their hour as local wall-clock time,
    so rows never drift across a timezone boundary. Operations whose hour has fully
    elapsed are ignored; equal end times yield :attr:`NextAction.AMBIGUOUS`.
    """

    now_local = context.now.replace(tzinfo=None)
    ends: dict[Action, datetime] = {}
    for action in Action:
        scheduled_date = row.date_for(action)
        if scheduled_date is None:
            continue
        end = _hour_end(scheduled_date, effective_hour(row, action))
        if end > now_local:
            ends[action] = end

    if not ends:
        return None
    if len(ends) == 1:
        return NextAction(next(iter(ends)).value)
    if ends[Action.ADD] == ends[Action.REMOVE]:
        return NextAction.AMBIGUOUS
    return NextAction.ADD if ends[Action.ADD] < ends[Action.REMOVE] else NextAction.REMOVE


__all__ = [
    "DEFAULT_WINDOWS",
    "SELF_CONFLICT_MESSAGE",
    "InvalidHourError",
    "MinuteWindow",
    "WindowConfig",
    "WindowResolution",
    "closest_future_action",
    "describe_schedule",
    "effective_hour",
    "format_hour_range",
    "has_self_conflict",
    "parse_hour",
    "resolve_actions",
]
