from __future__ import annotations

from dataclasses import replace

from assetsched.domain.fingerprint import schedule_fingerprint
from tests.helpers.scheduling import TODAY, image_row, text_row


def test_fingerprint_is_stable_and_order_independent() -> None:
    rows = [text_row(row_number=2, add_date=TODAY), image_row(row_number=2, add_date=TODAY)]

    first = schedule_fingerprint(rows)

    assert first == schedule_fingerprint(list(reversed(rows)))
    assert len(first) == 64
    int(first, 16)


def test_any_field_change_alters_fingerprint() -> None:
    row = text_row(add_date=TODAY, add_hour="10")
    baseline = schedule_fingerprint([row])

    variants = [
        replace(row, add_hour="11"),
        replace(row, member_key="Shop Later"),
        replace(row, sub_collection=""),
        replace(row, remove_date=TODAY),
        replace(row, row_number=3),
    ]

    assert all(schedule_fingerprint([variant]) != baseline for variant in variants)


def test_empty_schedule_has_a_fingerprint() -> None:
    assert schedule_fingerprint([]) == schedule_fingerprint(())


def test_unreadable_date_text_changes_the_fingerprint() -> None:
    first = text_row(input_errors=("Invalid Add Date: '2025/03/10'",))
    second = text_row(input_errors=("Invalid Add Date: '2025/03/11'",))

    assert schedule_fingerprint([first]) != schedule_fingerprint([second])
