"""Date horizon filter: keep rows with at least one operation still ahead of us."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .time_windows import DEFAULT_WINDOWS, InvalidHourError, parse_hour
from .types import Action

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .run_context import RunContext
    from .time_windows import WindowConfig
    from .types import ScheduleRow

log = getLogger(__name__)

DEFAULT_HORIZON_DAYS: Final[int] = 30


@dataclass(frozen=True, slots=True)
class HorizonEntry:
    row: ScheduleRow
    add_in_range: bool
    remove_in_range: bool


def _action_in_range(
    row: ScheduleRow,
    action: Action,
    context: RunContext,
    last_day_iso: str,
    windows: WindowConfig,
) -> bool:
    scheduled_date = row.date_for(action)
    if scheduled_date is None:
        return False
    # ISO strings compare as calendar dates, independent of any instant arithmetic.
    scheduled_iso = scheduled_date.isoformat()
    today_iso = context.today.isoformat()
    if not today_iso <= scheduled_iso <= last_day_iso:
        return False
    if scheduled_iso != today_iso:
        return True

    try:
        hour = parse_hour(row.hour_text_for(action))
    except InvalidHourError:
        # Kept so the malformed hour is reported instead of silently dropped.
        log.debug("Row %s keeps malformed %s hour in horizon", row.row_id, action)
        return True
    window = windows.window_for(action, hour)
    return context.minute_of_day < window.end


def _keeps_input_errors(row: ScheduleRow, context: RunContext) -> bool:
    if not row.input_errors:
        return False
    # A readable date in the past still drops the row.
    dates = [value for value in (row.add_date, row.remove_date) if value is not None]
    return all(scheduled_date >= context.today for scheduled_date in dates)


def filter_by_horizon(
    rows: Iterable[ScheduleRow],
    context: RunContext,
    *,
    days: int = DEFAULT_HORIZON_DAYS,
    windows: WindowConfig = DEFAULT_WINDOWS,
) -> list[HorizonEntry]:
    """Return rows with an add or remove date in ``[today, today + days]``.

    A same-day operation whose hour has already fully elapsed does not count. Rows
    with input errors stay in so the errors can be reported.
    """

    if days < 0:
        raise ValueError("Horizon must not be negative")
    last_day_iso = (context.today + timedelta(days=days)).isoformat()

    entries: list[HorizonEntry] = []
    for row in rows:
        add_in_range = _action_in_range(row, Action.ADD, context, last_day_iso, windows)
        remove_in_range = _action_in_range(row, Action.REMOVE, context, last_day_iso, windows)
        if add_in_range or remove_in_range or _keeps_input_errors(row, context):
            entries.append(HorizonEntry(row, add_in_range, remove_in_range))
    log.info(
        "Horizon %s..%s keeps %d row(s)", context.today.isoformat(), last_day_iso, len(entries)
    )
    return entries


__all__ = ["DEFAULT_HORIZON_DAYS", "HorizonEntry", "filter_by_horizon"]
