"""Per-row, per-sub-collection validation against the live catalog.

Every check runs and its message is collected; a row is never rejected on the
first problem. Row-level problems (input, collection) produce a single ERROR
verdict. Once target sub-collections are resolved, each gets its own verdict.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from itertools import count
from logging import getLogger
from typing import TYPE_CHECKING

from .limits import ValidationLimits, check_aspect_ratio, detect_image_type, normalize_image_type
from .time_windows import (
    SELF_CONFLICT_MESSAGE,
    InvalidHourError,
    closest_future_action,
    describe_schedule,
    effective_hour,
    format_hour_range,
    has_self_conflict,
    parse_hour,
)
from .types import (
    TEXT_FIELD_TYPES,
    Action,
    FieldType,
    MemberKind,
    NextAction,
    ValidationVerdict,
    VerdictStatus,
    worst_status,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import date

    from .catalog import CatalogSnapshot, SubCollectionState
    from .run_context import RunContext
    from .time_windows import WindowResolution
    from .types import ResolvedAction, ScheduleRow

log = getLogger(__name__)

_ASSET_ID_PATTERN = re.compile(r"^\d+$")
NO_FUTURE_ACTION_MESSAGE = "Internal: no future action"


@dataclass(frozen=True, slots=True)
class RowValidation:
    """All verdicts produced for one row in one validation pass."""

    row: ScheduleRow
    verdicts: tuple[ValidationVerdict, ...]

    @property
    def status(self) -> VerdictStatus:
        return worst_status(verdict.status for verdict in self.verdicts)


@dataclass(frozen=True, slots=True)
class _Candidate:
    row: ScheduleRow
    label: str
    action: Action | None
    checks_add: bool
    checks_remove: bool
    scheduled: str
    in_window: bool
    scheduled_date: date | None = None
    hour: int | None = None


@dataclass(slots=True)
class _MemberFacts:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    field_type: FieldType | None = None


@dataclass(slots=True)
class Validator:
    """Produce verdicts for window actions and for preview rows."""

    limits: ValidationLimits = field(default_factory=ValidationLimits)
    _ids: Iterator[int] = field(default_factory=lambda: count(1))

    def validate_action(
        self, resolved: ResolvedAction, snapshot: CatalogSnapshot, context: RunContext
    ) -> RowValidation:
        """Validate one operation that is executable right now."""

        candidate = _Candidate(
            row=resolved.row,
            label=resolved.action.value,
            action=resolved.action,
            checks_add=resolved.action is Action.ADD,
            checks_remove=resolved.action is Action.REMOVE,
            scheduled=format_hour_range(resolved.scheduled_date, resolved.effective_hour),
            in_window=True,
            scheduled_date=resolved.scheduled_date,
            hour=resolved.effective_hour,
        )
        return self._validate(candidate, snapshot, context, [])

    def validate_unresolvable(
        self, resolution: WindowResolution, context: RunContext
    ) -> RowValidation:
        """Report an in-window row whose actions cannot run, e.g. a self-conflict."""

        row = resolution.row
        verdict = self._verdict(
            row,
            VerdictStatus.ERROR,
            "; ".join(resolution.errors) or SELF_CONFLICT_MESSAGE,
            context,
            next_action=NextAction.AMBIGUOUS.value,
            scheduled=describe_schedule(row),
            in_window=True,
        )
        return RowValidation(row=row, verdicts=(verdict,))

    def validate_hour_errors(
        self, resolution: WindowResolution, context: RunContext
    ) -> RowValidation:
        """Report same-day operations of an in-window row whose hour text is malformed."""

        row = resolution.row
        verdicts = tuple(
            self._verdict(
                row,
                VerdictStatus.ERROR,
                message,
                context,
                next_action=action.value,
                scheduled=describe_schedule(row),
                in_window=True,
                action=action,
                scheduled_date=row.date_for(action),
            )
            for action, message in resolution.hour_errors
        )
        return RowValidation(row=row, verdicts=verdicts)

    def validate_preview(
        self, row: ScheduleRow, snapshot: CatalogSnapshot, context: RunContext
    ) -> RowValidation:
        """Validate a not-yet-executable row against its closest future action."""

        scheduled = describe_schedule(row)
        next_action = closest_future_action(row, context)
        if next_action is None:
            if not row.input_errors:
                log.error("Row %s is in the horizon but has no future action", row.row_id)
            verdict = self._verdict(
                row,
                VerdictStatus.ERROR,
                "; ".join(row.input_errors) or NO_FUTURE_ACTION_MESSAGE,
                context,
                next_action="N/A",
                scheduled=scheduled or "N/A",
                in_window=False,
            )
            return RowValidation(row=row, verdicts=(verdict,))

        hour_errors: list[str] = []
        for action in row.scheduled_actions():
            try:
                parse_hour(row.hour_text_for(action))
            except InvalidHourError as exc:
                hour_errors.append(f"Invalid {action} hour: {exc}")

        action = next_action.action
        scheduled_date = row.date_for(action) if action is not None else None
        candidate = _Candidate(
            row=row,
            label=next_action.value,
            action=action,
            checks_add=next_action in (NextAction.ADD, NextAction.AMBIGUOUS),
            checks_remove=next_action in (NextAction.REMOVE, NextAction.AMBIGUOUS),
            scheduled=scheduled,
            in_window=False,
            scheduled_date=scheduled_date,
            hour=effective_hour(row, action) if action is not None else None,
        )
        return self._validate(candidate, snapshot, context, hour_errors)

    def _validate(
        self,
        candidate: _Candidate,
        snapshot: CatalogSnapshot,
        context: RunContext,
        errors: list[str],
    ) -> RowValidation:
        row = candidate.row
        if has_self_conflict(row):
            errors.append(SELF_CONFLICT_MESSAGE)
        errors.extend(row.input_errors)
        if not row.collection.strip():
            errors.append("Missing collection name")

        if row.kind is MemberKind.TEXT:
            facts = self._text_facts(candidate)
        else:
            facts = self._image_facts(candidate, snapshot)
        errors.extend(facts.errors)

        if row.collection.strip() and snapshot.collection_id(row.collection) is None:
            errors.append("Collection not found")

        if errors:
            return self._single_error(candidate, "; ".join(errors), context)

        targets = snapshot.target_sub_collections(row.collection, row.sub_collection)
        if not targets:
            return self._single_error(
                candidate, "No active non-placeholder sub-collection found", context
            )
        log.debug(
            "Row %s targets %d sub-collection(s): %s",
            row.row_id,
            len(targets),
            ", ".join(state.sub_collection.name for state in targets[:3]),
        )

        verdicts: list[ValidationVerdict] = []
        for state in targets:
            group_errors, group_warnings, link_id = self._capacity_checks(
                candidate, state, facts.field_type
            )
            warnings = [*facts.warnings, *group_warnings]
            if group_errors:
                status, message = VerdictStatus.ERROR, "; ".join(group_errors)
            elif warnings:
                status, message = VerdictStatus.WARNING, "; ".join(warnings)
            else:
                status, message = VerdictStatus.OK, "OK"
            verdicts.append(
                self._verdict(
                    row,
                    status,
                    message,
                    context,
                    next_action=candidate.label,
                    scheduled=candidate.scheduled,
                    in_window=candidate.in_window,
                    action=candidate.action,
                    scheduled_date=candidate.scheduled_date,
                    hour=candidate.hour,
                    sub_collection=state.sub_collection.ref,
                    field_type=facts.field_type,
                    link_id=link_id,
                )
            )
        return RowValidation(row=row, verdicts=tuple(verdicts))

    def _text_facts(self, candidate: _Candidate) -> _MemberFacts:
        row = candidate.row
        facts = _MemberFacts()
        declared = row.member_type.strip().upper()
        try:
            field_type = FieldType(declared)
        except ValueError:
            field_type = None
        if field_type not in TEXT_FIELD_TYPES:
            facts.errors.append(f'Invalid text type: "{declared}"')
            field_type = None
        facts.field_type = field_type

        text = row.member_key
        if not text:
            facts.errors.append("Missing text")
            return facts
        limit = self.limits.text_limit(field_type) if field_type is not None else None
        if limit is None or not candidate.checks_add:
            return facts
        if len(text) > limit.max_length:
            facts.errors.append(f"Too long ({len(text)}/{limit.max_length} chars)")
        if "!" in text and field_type in self.limits.no_exclamation:
            label = "long headline" if field_type is FieldType.LONG_HEADLINE else "headline"
            facts.warnings.append(f"Exclamation mark in {label} (not recommended)")
        return facts

    def _image_facts(self, candidate: _Candidate, snapshot: CatalogSnapshot) -> _MemberFacts:
        row = candidate.row
        facts = _MemberFacts()
        asset_id = row.member_key
        if not asset_id:
            facts.errors.append("Missing asset id")
        elif not _ASSET_ID_PATTERN.match(asset_id):
            facts.errors.append("Asset id must contain digits only")

        declared = normalize_image_type(row.member_type)
        if declared is None:
            facts.errors.append(f'Invalid image type: "{row.member_type.strip()}"')
        facts.field_type = declared

        if not asset_id or not _ASSET_ID_PATTERN.match(asset_id):
            return facts
        details = snapshot.media_for(asset_id)
        if details is None:
            facts.errors.append("Asset id not found")
            return facts
        if not details.is_image:
            facts.errors.append(f"Asset type is {details.asset_type}, not IMAGE")
            return facts

        detection = detect_image_type(row.member_type, details.width, details.height)
        if detection.error:
            facts.errors.append(detection.error)
            return facts
        facts.field_type = detection.field_type
        if detection.mismatch and detection.declared is not None:
            facts.warnings.append(
                f'Image type mismatch: declared "{row.member_type.strip()}" '
                f"({detection.declared}) but the image is {detection.detected_label}. "
                f"Action and limits apply to {detection.field_type}."
            )
        if candidate.checks_add and detection.field_type is not None:
            aspect_error = check_aspect_ratio(details.width, details.height, detection.field_type)
            if aspect_error:
                facts.errors.append(aspect_error)
        return facts

    def _capacity_checks(
        self,
        candidate: _Candidate,
        state: SubCollectionState,
        field_type: FieldType | None,
    ) -> tuple[list[str], list[str], str | None]:
        if field_type is None:
            return ["Unresolved member type"], [], None
        if candidate.row.kind is MemberKind.TEXT:
            return self._text_capacity(candidate, state, field_type)
        return self._image_capacity(candidate, state, field_type)

    def _text_capacity(
        self, candidate: _Candidate, state: SubCollectionState, field_type: FieldType
    ) -> tuple[list[str], list[str], str | None]:
        errors: list[str] = []
        warnings: list[str] = []
        limit = self.limits.text_limit(field_type)
        if limit is None:
            return ["No limits configured for " + field_type], warnings, None
        current = len(state.of_type(field_type))
        existing = state.find_text(field_type, candidate.row.member_key)

        if candidate.checks_add:
            if current + 1 > limit.max_count:
                errors.append(f"Max limit exceeded ({current}+1 > {limit.max_count})")
            elif limit.near_limit(current):
                warnings.append(
                    f"Limit near (current={current}, after={current + 1}, max={limit.max_count})"
                )
            if existing is not None:
                errors.append("Text member already exists in sub-collection")

        if candidate.checks_remove:
            if existing is None and candidate.action is Action.REMOVE:
                errors.append("Text member not found in sub-collection")
            if existing is not None and current - 1 < limit.min_count:
                warnings.append(
                    f"Below minimum after remove: {current - 1} advertiser {field_type} "
                    f"left (min={limit.min_count})"
                )

        link_id = existing.link_id if existing is not None and candidate.checks_remove else None
        return errors, warnings, link_id

    def _image_capacity(
        self, candidate: _Candidate, state: SubCollectionState, field_type: FieldType
    ) -> tuple[list[str], list[str], str | None]:
        errors: list[str] = []
        warnings: list[str] = []
        limits = self.limits.image
        images = state.image_members()
        total = len(images)
        existing = state.find_image(candidate.row.member_key)

        if candidate.checks_add:
            if total + 1 > limits.max_total:
                errors.append(f"Image limit exceeded ({total}+1 > {limits.max_total})")
            elif limits.warn_threshold and total >= limits.max_total - limits.warn_threshold:
                warnings.append(
                    f"Limit near (current={total}, after={total + 1}, max={limits.max_total})"
                )
            if existing is not None:
                errors.append("Image member already exists in sub-collection")

        if candidate.checks_remove:
            if existing is None and candidate.action is Action.REMOVE:
                errors.append("Image member not found in sub-collection")
            minimum = limits.minimum_for(field_type)
            if existing is not None and existing.field_type is field_type and minimum:
                remaining = len(state.of_type(field_type)) - 1
                if remaining < minimum:
                    warnings.append(
                        f"Below minimum after remove: {remaining} advertiser {field_type} "
                        f"left (min={minimum})"
                    )

        link_id = existing.link_id if existing is not None and candidate.checks_remove else None
        return errors, warnings, link_id

    def _single_error(
        self, candidate: _Candidate, message: str, context: RunContext
    ) -> RowValidation:
        verdict = self._verdict(
            candidate.row,
            VerdictStatus.ERROR,
            message,
            context,
            next_action=candidate.label,
            scheduled=candidate.scheduled,
            in_window=candidate.in_window,
            action=candidate.action,
            scheduled_date=candidate.scheduled_date,
            hour=candidate.hour,
        )
        return RowValidation(row=candidate.row, verdicts=(verdict,))

    def _verdict(
        self,
        row: ScheduleRow,
        status: VerdictStatus,
        message: str,
        context: RunContext,
        **fields: object,
    ) -> ValidationVerdict:
        return ValidationVerdict(
            verdict_id=next(self._ids),
            row=row,
            status=status,
            message=message,
            timestamp=context.timestamp,
            **fields,  # type: ignore[arg-type]
        )


__all__ = ["NO_FUTURE_ACTION_MESSAGE", "RowValidation", "Validator"]
