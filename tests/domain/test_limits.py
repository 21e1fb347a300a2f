from __future__ import annotations

import pytest

from assetsched.domain.limits import (
    ValidationLimits,
    check_aspect_ratio,
    detect_image_type,
    normalize_image_type,
)
from assetsched.domain.types import FieldType


def test_default_text_limits() -> None:
    limits = ValidationLimits()
    headline = limits.text_limit(FieldType.HEADLINE)

    assert headline is not None
    assert (headline.min_count, headline.max_count, headline.max_length) == (3, 15, 30)
    assert headline.near_limit(13)
    assert not headline.near_limit(12)
    assert limits.text_limit(FieldType.MARKETING_IMAGE) is None
    assert FieldType.DESCRIPTION not in limits.no_exclamation


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("HORIZONTAL", FieldType.MARKETING_IMAGE),
        ("horizontal 1.91:1", FieldType.MARKETING_IMAGE),
        ("Square", FieldType.SQUARE_MARKETING_IMAGE),
        ("1:1", FieldType.SQUARE_MARKETING_IMAGE),
        ("VERTICAL", FieldType.PORTRAIT_MARKETING_IMAGE),
        ("vertical 4:5", FieldType.PORTRAIT_MARKETING_IMAGE),
        ("9:16", FieldType.TALL_PORTRAIT_MARKETING_IMAGE),
        ("", None),
        ("LOGO", None),
    ],
)
def test_normalize_image_type(label: str, expected: FieldType | None) -> None:
    assert normalize_image_type(label) is expected


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [
        (1200, 628, FieldType.MARKETING_IMAGE),
        (1200, 1200, FieldType.SQUARE_MARKETING_IMAGE),
        (960, 1200, FieldType.PORTRAIT_MARKETING_IMAGE),
        (900, 1600, FieldType.TALL_PORTRAIT_MARKETING_IMAGE),
    ],
)
def test_detect_image_type_from_dimensions(width: int, height: int, expected: FieldType) -> None:
    detection = detect_image_type("", width, height)

    assert detection.field_type is expected
    assert not detection.mismatch
    assert detection.error is None


def test_detection_flags_mismatch_and_prefers_dimensions() -> None:
    detection = detect_image_type("HORIZONTAL", 1200, 1200)

    assert detection.field_type is FieldType.SQUARE_MARKETING_IMAGE
    assert detection.declared is FieldType.MARKETING_IMAGE
    assert detection.mismatch
    assert detection.detected_label == "SQUARE (1:1)"


def test_detection_rejects_unknown_ratio() -> None:
    detection = detect_image_type("HORIZONTAL", 1000, 300)

    assert detection.field_type is None
    assert detection.error is not None
    assert "Unsupported aspect ratio: 1000x300" in detection.error


def test_detection_without_dimensions_keeps_declaration() -> None:
    assert detect_image_type("SQUARE", 0, 0).field_type is FieldType.SQUARE_MARKETING_IMAGE
    assert detect_image_type("", 0, 0).field_type is FieldType.PORTRAIT_MARKETING_IMAGE


def test_check_aspect_ratio() -> None:
    assert check_aspect_ratio(1200, 628, FieldType.MARKETING_IMAGE) is None
    assert check_aspect_ratio(0, 628, FieldType.MARKETING_IMAGE) == "Invalid image dimensions"
    message = check_aspect_ratio(1200, 1200, FieldType.MARKETING_IMAGE)
    assert message is not None
    assert message.startswith("Aspect ratio error: 1200x1200 = 1.00:1")
