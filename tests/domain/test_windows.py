from __future__ import annotations

from datetime import timedelta

import pytest

from assetsched.domain.time_windows import (
    SELF_CONFLICT_MESSAGE,
    InvalidHourError,
    MinuteWindow,
    closest_future_action,
    describe_schedule,
    has_self_conflict,
    parse_hour,
    resolve_actions,
)
from assetsched.domain.types import Action, NextAction
from tests.helpers.scheduling import TODAY, make_context, text_row


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", None), ("  ", None), ("0", 0), ("7", 7), ("07", 7), ("10:00", 10), ("23", 23)],
)
def test_parse_hour_accepts_plain_and_on_the_hour(raw: str, expected: int | None) -> None:
    assert parse_hour(raw) == expected


@pytest.mark.parametrize("raw", ["24", "10:30", "abc", "-1", "1000", "10:00:00"])
def test_parse_hour_rejects_malformed_text(raw: str) -> None:
    with pytest.raises(InvalidHourError, match=raw.strip()):
        parse_hour(raw)


@pytest.mark.parametrize("hour", range(24))
def test_custom_hour_window_is_half_open(hour: int) -> None:
    window = MinuteWindow.for_hour(hour)

    assert window.contains(hour * 60)
    assert window.contains(hour * 60 + 59)
    assert not window.contains(hour * 60 + 60)
    assert not window.contains(hour * 60 - 1)


@pytest.mark.parametrize("hour", range(24))
def test_row_with_custom_add_hour_is_due_only_inside_that_hour(hour: int) -> None:
    row = text_row(add_date=TODAY, add_hour=str(hour))

    inside = resolve_actions(row, make_context(hour, 0))
    last_minute = resolve_actions(row, make_context(hour, 59))
    after = resolve_actions(row, make_context((hour + 1) % 24, 0))

    assert [action.action for action in inside.actions] == [Action.ADD]
    assert inside.actions[0].effective_hour == hour
    assert last_minute.in_window
    assert not after.in_window


def test_default_windows_cover_first_and_last_hour() -> None:
    row = text_row(add_date=TODAY, remove_date=TODAY + timedelta(days=1))
    assert resolve_actions(row, make_context(0, 0)).in_window
    assert not resolve_actions(row, make_context(1, 0)).in_window

    removal = text_row(remove_date=TODAY)
    assert resolve_actions(removal, make_context(23, 0)).in_window
    assert resolve_actions(removal, make_context(23, 59)).in_window
    assert not resolve_actions(removal, make_context(22, 59)).in_window


def test_resolution_ignores_other_days() -> None:
    row = text_row(add_date=TODAY + timedelta(days=1), add_hour="10")

    resolution = resolve_actions(row, make_context(10, 5))

    assert not resolution.in_window
    assert resolution.actions == ()


def test_invalid_hour_is_reported_and_never_executable() -> None:
    row = text_row(add_date=TODAY, add_hour="10:30")

    resolution = resolve_actions(row, make_context(10, 30))

    assert not resolution.in_window
    assert resolution.errors
    assert "10:30" in resolution.errors[0]
    assert [action for action, _ in resolution.hour_errors] == [Action.ADD]


def test_self_conflicting_row_yields_no_actions() -> None:
    row = text_row(add_date=TODAY, add_hour="10", remove_date=TODAY, remove_hour="10")

    resolution = resolve_actions(row, make_context(10, 0))

    assert has_self_conflict(row)
    assert resolution.self_conflict
    assert resolution.in_window
    assert resolution.actions == ()
    assert SELF_CONFLICT_MESSAGE in resolution.errors


def test_blank_hours_on_same_day_are_not_a_self_conflict() -> None:
    row = text_row(add_date=TODAY, remove_date=TODAY)

    resolution = resolve_actions(row, make_context(0, 30))

    assert not has_self_conflict(row)
    assert [action.action for action in resolution.actions] == [Action.ADD]


def test_add_and_remove_both_due_in_their_hours() -> None:
    row = text_row(add_date=TODAY, add_hour="10", remove_date=TODAY, remove_hour="11")

    assert [a.action for a in resolve_actions(row, make_context(10, 0)).actions] == [Action.ADD]
    assert [a.action for a in resolve_actions(row, make_context(11, 0)).actions] == [
        Action.REMOVE
    ]


def test_closest_future_action_picks_earliest_hour_end() -> None:
    row = text_row(
        add_date=TODAY + timedelta(days=2), remove_date=TODAY + timedelta(days=1)
    )

    assert closest_future_action(row, make_context(12, 0)) is NextAction.REMOVE


def test_closest_future_action_drops_elapsed_actions() -> None:
    row = text_row(add_date=TODAY, add_hour="8", remove_date=TODAY + timedelta(days=3))

    assert closest_future_action(row, make_context(12, 0)) is NextAction.REMOVE


def test_closest_future_action_reports_ties_as_ambiguous() -> None:
    row = text_row(add_date=TODAY, add_hour="15", remove_date=TODAY, remove_hour="15")

    assert closest_future_action(row, make_context(12, 0)) is NextAction.AMBIGUOUS


def test_closest_future_action_rolls_hour_23_into_next_day() -> None:
    row = text_row(remove_date=TODAY)

    assert closest_future_action(row, make_context(23, 30)) is NextAction.REMOVE


def test_closest_future_action_none_when_everything_elapsed() -> None:
    row = text_row(add_date=TODAY - timedelta(days=1))

    assert closest_future_action(row, make_context(12, 0)) is None


def test_describe_schedule_lists_every_action_with_effective_hours() -> None:
    row = text_row(add_date=TODAY, add_hour="9", remove_date=TODAY + timedelta(days=1))

    assert describe_schedule(row) == (
        "ADD: 2025-03-10 09:00-09:59 | REMOVE: 2025-03-11 23:00-23:59"
    )
