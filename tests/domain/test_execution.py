from __future__ import annotations

import random

import pytest

from assetsched.domain.deduplication import plan_operations
from assetsched.domain.execution import Executor, Pacing
from assetsched.domain.ports.platform import (
    CreateTextMember,
    LinkMember,
    MutationResult,
    PlatformError,
    UnlinkMember,
)
from assetsched.domain.types import Action, FieldType, Operation, OutcomeStatus
from tests.helpers.scheduling import (
    FakePlatform,
    RecordingSleep,
    image_row,
    make_context,
    make_verdict,
    text_row,
)

STEADY = Pacing(fixed=0.75, jitter=0.0)


@pytest.fixture
def platform() -> FakePlatform:
    platform = FakePlatform()
    platform.add_group("Group A", texts={FieldType.HEADLINE: ["Old"]})
    platform.add_group("Group B")
    return platform


def _executor(platform: FakePlatform, sleep: RecordingSleep | None = None) -> Executor:
    return Executor(
        platform=platform, pacing=STEADY, sleep=sleep or RecordingSleep(), rng=random.Random(7)
    )


def _text_adds(*groups: str, text: str = "Shop Now") -> list[Operation]:
    row = text_row(text)
    return plan_operations(
        make_verdict(index, row, Action.ADD, group=group) for index, group in enumerate(groups, 1)
    )


def _image_add() -> Operation:
    (operation,) = plan_operations(
        [make_verdict(1, image_row("555"), Action.ADD, field_type=FieldType.MARKETING_IMAGE)]
    )
    return operation


def test_text_member_is_created_once_and_linked_everywhere(platform: FakePlatform) -> None:
    outcomes = _executor(platform).execute_all(
        _text_adds("Group A", "Group B"), make_context()
    )

    assert [outcome.status for outcome in outcomes] == [OutcomeStatus.SUCCESS] * 2
    creates = [m for m in platform.mutations if isinstance(m, CreateTextMember)]
    links = [m for m in platform.mutations if isinstance(m, LinkMember)]
    assert creates == [CreateTextMember(text="Shop Now")]
    assert {link.sub_collection_id for link in links} == {
        "customers/1/assetGroups/Group_A",
        "customers/1/assetGroups/Group_B",
    }
    assert all(link.member_id == platform.text_assets["Shop Now"] for link in links)


def test_existing_text_member_is_reused(platform: FakePlatform) -> None:
    platform.text_assets["Shop Now"] = "customers/1/assets/42"

    (outcome,) = _executor(platform).execute_all(_text_adds("Group B"), make_context())

    assert outcome.status is OutcomeStatus.SUCCESS
    assert platform.mutations == [
        LinkMember(
            sub_collection_id="customers/1/assetGroups/Group_B",
            member_id="customers/1/assets/42",
            field_type=FieldType.HEADLINE,
        )
    ]


def test_failed_creation_is_cached_for_the_run(platform: FakePlatform) -> None:
    platform.scripted_results = [MutationResult(success=False, errors=("POLICY_VIOLATION",))]

    outcomes = _executor(platform).execute_all(
        _text_adds("Group A", "Group B"), make_context()
    )

    assert [outcome.status for outcome in outcomes] == [OutcomeStatus.ERROR] * 2
    assert all(
        outcome.message == "Text member creation failed: POLICY_VIOLATION" for outcome in outcomes
    )
    assert platform.mutations == [CreateTextMember(text="Shop Now")]


def test_transient_failure_is_retried_with_backoff(platform: FakePlatform) -> None:
    platform.scripted_results = [
        MutationResult(success=False, errors=("CONCURRENT_MODIFICATION",))
    ]
    sleep = RecordingSleep()

    outcome = _executor(platform, sleep).execute(_image_add(), make_context())

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.attempts == 2
    assert outcome.message == "Executed (attempt 2)"
    assert sleep.delays == [1.0]
    assert len(platform.mutations) == 2


def test_permanent_failure_is_reported_without_retry(platform: FakePlatform) -> None:
    platform.scripted_results = [MutationResult(success=False, errors=("DUPLICATE_RESOURCE",))]
    sleep = RecordingSleep()

    outcome = _executor(platform, sleep).execute(_image_add(), make_context())

    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.message == "Error: DUPLICATE_RESOURCE"
    assert outcome.attempts == 1
    assert sleep.delays == []


def test_raised_transient_errors_exhaust_the_budget(platform: FakePlatform) -> None:
    platform.scripted_results = [PlatformError("INTERNAL_ERROR")] * 3

    outcome = _executor(platform).execute(_image_add(), make_context())

    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.attempts == 3
    assert outcome.message == "Error: INTERNAL_ERROR"


def test_pacing_between_operations_only(platform: FakePlatform) -> None:
    sleep = RecordingSleep()
    platform.text_assets["Shop Now"] = "customers/1/assets/42"

    _executor(platform, sleep).execute_all(_text_adds("Group A", "Group B"), make_context())

    assert sleep.delays == [0.75]


def test_jittered_pacing_stays_in_range() -> None:
    pacing = Pacing()
    rng = random.Random(3)

    delays = [pacing.next_delay(rng) for _ in range(50)]

    assert all(0.75 <= delay < 1.0 for delay in delays)


def test_remove_unlinks_by_link_id(platform: FakePlatform) -> None:
    (old,) = platform.links["customers/1/assetGroups/Group_A"]
    (operation,) = plan_operations(
        [make_verdict(1, text_row("Old"), Action.REMOVE, link_id=old.link_id)]
    )

    outcome = _executor(platform).execute(operation, make_context())

    assert outcome.status is OutcomeStatus.SUCCESS
    assert platform.mutations == [UnlinkMember(link_id=old.link_id)]
    assert platform.links["customers/1/assetGroups/Group_A"] == []


def test_remove_without_link_fails_without_calling_platform(platform: FakePlatform) -> None:
    (operation,) = plan_operations([make_verdict(1, text_row("Old"), Action.REMOVE)])

    outcome = _executor(platform).execute(operation, make_context())

    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.message.startswith("Nothing to unlink")
    assert platform.mutations == []


def test_outcome_timestamp_comes_from_run_context(platform: FakePlatform) -> None:
    context = make_context(hour=14, minute=5)

    outcome = _executor(platform).execute(_image_add(), context)

    assert outcome.timestamp == context.timestamp


def test_unexpected_adapter_failure_stays_with_its_operation(platform: FakePlatform) -> None:
    platform.text_assets["Shop Now"] = "customers/1/assets/42"
    platform.scripted_results = [ValueError("Expecting value: line 1 column 1 (char 0)")]

    outcomes = _executor(platform).execute_all(
        _text_adds("Group A", "Group B"), make_context()
    )

    assert [outcome.status for outcome in outcomes] == [
        OutcomeStatus.ERROR,
        OutcomeStatus.SUCCESS,
    ]
    assert outcomes[0].message == "Error: Expecting value: line 1 column 1 (char 0)"
    assert len(platform.mutations) == 2


def test_failed_lookup_does_not_create_a_second_text_member(
    platform: FakePlatform, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_lookup(text: str) -> str | None:
        raise PlatformError("UNAUTHENTICATED")

    monkeypatch.setattr(platform, "find_text_member", failing_lookup)

    outcome = _executor(platform).execute(_text_adds("Group A")[0], make_context())

    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.message == "Text member lookup failed: UNAUTHENTICATED"
    assert platform.mutations == []
