from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from assetsched.domain.conflicts import CONFLICT_MESSAGE, detect_conflicts
from assetsched.domain.types import Action, VerdictStatus
from tests.helpers.scheduling import TODAY, image_row, make_verdict, text_row


def test_cross_row_add_and_remove_in_same_hour_escalate_both() -> None:
    adder = image_row("555", row_number=2, add_date=TODAY, add_hour="14")
    remover = image_row("555", row_number=3, remove_date=TODAY, remove_hour="14")
    verdicts = [
        make_verdict(1, adder, Action.ADD, hour=14),
        make_verdict(2, remover, Action.REMOVE, hour=14),
    ]

    result = detect_conflicts(verdicts)

    assert result.conflict_count == 1
    assert result.escalated_ids == {1, 2}
    assert [verdict.status for verdict in result.verdicts] == [VerdictStatus.ERROR] * 2
    assert all(verdict.message == CONFLICT_MESSAGE for verdict in result.verdicts)


def test_state_check_error_still_claims_its_slot() -> None:
    adder = image_row("555", row_number=2, add_date=TODAY, add_hour="14")
    remover = image_row("555", row_number=3, remove_date=TODAY, remove_hour="14")
    verdicts = [
        make_verdict(1, adder, Action.ADD, hour=14),
        make_verdict(2, remover, Action.REMOVE, hour=14, status=VerdictStatus.ERROR),
    ]

    result = detect_conflicts(verdicts)

    assert result.verdicts[0].status is VerdictStatus.ERROR
    assert result.conflict_count == 1


def test_escalation_keeps_the_state_check_message() -> None:
    adder = image_row("555", row_number=2, add_date=TODAY, add_hour="14")
    remover = image_row("555", row_number=3, remove_date=TODAY, remove_hour="14")
    not_found = replace(
        make_verdict(2, remover, Action.REMOVE, hour=14, status=VerdictStatus.ERROR),
        message="Image member not found in sub-collection",
    )

    result = detect_conflicts([make_verdict(1, adder, Action.ADD, hour=14), not_found])

    assert result.verdicts[0].message == CONFLICT_MESSAGE
    assert result.verdicts[1].message == (
        f"Image member not found in sub-collection; {CONFLICT_MESSAGE}"
    )


def test_row_level_errors_without_sub_collection_do_not_participate() -> None:
    adder = text_row(row_number=2, add_date=TODAY, add_hour="10")
    remover = text_row(row_number=3, remove_date=TODAY, remove_hour="10")
    verdicts = [
        make_verdict(1, adder, Action.ADD),
        make_verdict(2, remover, Action.REMOVE, status=VerdictStatus.ERROR, group=None),
    ]

    result = detect_conflicts(verdicts)

    assert result.conflict_count == 0
    assert result.verdicts[0].status is VerdictStatus.OK


def test_different_hours_groups_or_members_do_not_conflict() -> None:
    adder = text_row("Shop Now", row_number=2)
    verdicts = [
        make_verdict(1, adder, Action.ADD, hour=10),
        make_verdict(2, text_row("Shop Now", row_number=3), Action.REMOVE, hour=11),
        make_verdict(3, text_row("Shop Now", row_number=4), Action.REMOVE, group="Group B"),
        make_verdict(4, text_row("Shop Later", row_number=5), Action.REMOVE),
        make_verdict(
            5, text_row("Shop Now", row_number=6, member_type="DESCRIPTION"), Action.REMOVE
        ),
    ]

    result = detect_conflicts(verdicts)

    assert result.conflict_count == 0
    assert all(verdict.status is VerdictStatus.OK for verdict in result.verdicts)


def test_member_text_with_separator_characters_never_aliases() -> None:
    first = text_row("A|B", row_number=2)
    second = text_row("A", row_number=3, sub_collection="B|Group A")
    verdicts = [
        make_verdict(1, first, Action.ADD),
        make_verdict(2, second, Action.REMOVE),
    ]

    assert detect_conflicts(verdicts).conflict_count == 0


def test_same_row_add_and_remove_is_left_to_self_conflict_handling() -> None:
    row = text_row(row_number=2, add_date=TODAY, add_hour="10", remove_date=TODAY)
    verdicts = [make_verdict(1, row, Action.ADD), make_verdict(2, row, Action.REMOVE)]

    assert detect_conflicts(verdicts).conflict_count == 0


def test_preview_verdicts_on_other_days_do_not_clash_with_today() -> None:
    adder = text_row(row_number=2, add_date=TODAY, add_hour="10")
    later = text_row(row_number=3, remove_date=TODAY + timedelta(days=1), remove_hour="10")
    removal = replace(
        make_verdict(2, later, Action.REMOVE, in_window=False),
        scheduled_date=TODAY + timedelta(days=1),
    )

    result = detect_conflicts([make_verdict(1, adder, Action.ADD), removal])

    assert result.conflict_count == 0
