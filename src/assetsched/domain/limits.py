"""Capacity limits and shape rules for members of a sub-collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .types import FieldType

ASPECT_TOLERANCE: Final[float] = 0.02


@dataclass(frozen=True, slots=True)
class TextLimit:
    min_count: int
    max_count: int
    max_length: int
    warn_threshold: int

    def near_limit(self, current: int) -> bool:
        return current >= self.max_count - self.warn_threshold


@dataclass(frozen=True, slots=True)
class ImageLimits:
    max_total: int = 20
    warn_threshold: int = 0
    min_per_type: dict[FieldType, int] = field(
        default_factory=lambda: {
            FieldType.MARKETING_IMAGE: 1,
            FieldType.SQUARE_MARKETING_IMAGE: 1,
            FieldType.PORTRAIT_MARKETING_IMAGE: 0,
            FieldType.TALL_PORTRAIT_MARKETING_IMAGE: 0,
        }
    )

    def minimum_for(self, field_type: FieldType) -> int:
        return self.min_per_type.get(field_type, 0)


def _default_text_limits() -> dict[FieldType, TextLimit]:
    return {
        FieldType.HEADLINE: TextLimit(min_count=3, max_count=15, max_length=30, warn_threshold=2),
        FieldType.LONG_HEADLINE: TextLimit(
            min_count=1, max_count=5, max_length=90, warn_threshold=1
        ),
        FieldType.DESCRIPTION: TextLimit(min_count=2, max_count=5, max_length=90, warn_threshold=1),
    }


@dataclass(frozen=True, slots=True)
class ValidationLimits:
    text: dict[FieldType, TextLimit] = field(default_factory=_default_text_limits)
    image: ImageLimits = field(default_factory=ImageLimits)
    # Field types whose payload must not contain an exclamation mark on ADD.
    no_exclamation: frozenset[FieldType] = frozenset(
        {FieldType.HEADLINE, FieldType.LONG_HEADLINE}
    )

    def text_limit(self, field_type: FieldType) -> TextLimit | None:
        return self.text.get(field_type)


# Target width/height ratio and human label per image slot. Detection checks them
# in this order.
ASPECT_RATIOS: Final[dict[FieldType, tuple[float, str]]] = {
    FieldType.MARKETING_IMAGE: (1.91, "HORIZONTAL (1.91:1)"),
    FieldType.SQUARE_MARKETING_IMAGE: (1.0, "SQUARE (1:1)"),
    FieldType.TALL_PORTRAIT_MARKETING_IMAGE: (0.5625, "VERTICAL (9:16)"),
    FieldType.PORTRAIT_MARKETING_IMAGE: (0.8, "VERTICAL (4:5)"),
}


def normalize_image_type(raw: str) -> FieldType | None:
    """Map a declared image shape label onto an image field type."""

    label = raw.strip().upper()
    if not label:
        return None
    if "HORIZONTAL" in label or "1.91" in label or "19" in label:
        return FieldType.MARKETING_IMAGE
    if "SQUARE" in label or "1:1" in label:
        return FieldType.SQUARE_MARKETING_IMAGE
    if "9:16" in label:
        return FieldType.TALL_PORTRAIT_MARKETING_IMAGE
    if "VERTICAL" in label or "4:5" in label:
        return FieldType.PORTRAIT_MARKETING_IMAGE
    return None


@dataclass(frozen=True, slots=True)
class ImageTypeDetection:
    field_type: FieldType | None
    declared: FieldType | None
    detected_label: str | None = None
    mismatch: bool = False
    error: str | None = None


def _ratio_matches(ratio: float, target: float) -> bool:
    return abs(ratio - target) <= ASPECT_TOLERANCE


def detect_image_type(declared_raw: str, width: int, height: int) -> ImageTypeDetection:
    """Resolve the field type of an image from its actual dimensions.

    Without usable dimensions the declared type stands. An unrecognised ratio is an
    error; a recognised ratio that differs from the declaration is a mismatch, and
    the detected type wins.
    """

    declared = normalize_image_type(declared_raw)
    if width <= 0 or height <= 0:
        return ImageTypeDetection(
            field_type=declared or FieldType.PORTRAIT_MARKETING_IMAGE, declared=declared
        )

    ratio = width / height
    for field_type, (target, label) in ASPECT_RATIOS.items():
        if _ratio_matches(ratio, target):
            return ImageTypeDetection(
                field_type=field_type,
                declared=declared,
                detected_label=label,
                mismatch=declared is not None and declared is not field_type,
            )

    return ImageTypeDetection(
        field_type=None,
        declared=declared,
        detected_label=f"unknown ({ratio:.2f}:1)",
        error=(
            f"Unsupported aspect ratio: {width}x{height} ({ratio:.2f}:1). Supported: "
            "1.91:1 (HORIZONTAL), 1:1 (SQUARE), 4:5 or 9:16 (VERTICAL)."
        ),
    )


def check_aspect_ratio(width: int, height: int, field_type: FieldType) -> str | None:
    """Return an error message when the image does not fit ``field_type``."""

    if width <= 0 or height <= 0:
        return "Invalid image dimensions"
    expected = ASPECT_RATIOS.get(field_type)
    if expected is None:
        return None
    target, label = expected
    ratio = width / height
    if _ratio_matches(ratio, target):
        return None
    return f"Aspect ratio error: {width}x{height} = {ratio:.2f}:1, expected {label}"


__all__ = [
    "ASPECT_RATIOS",
    "ASPECT_TOLERANCE",
    "ImageLimits",
    "ImageTypeDetection",
    "TextLimit",
    "ValidationLimits",
    "check_aspect_ratio",
    "detect_image_type",
    "normalize_image_type",
]
