"""Query builders for the platform's search endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from assetsched.domain.types import IMAGE_FIELD_TYPES, TEXT_FIELD_TYPES

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from assetsched.domain.types import FieldType

_ESCAPES: Final[tuple[tuple[str, str], ...]] = (
    # Backslash first so later escapes are not doubled.
    ("\\", "\\\\"),
    ("'", "\\'"),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
)

_TEXT_TYPES: Final[str] = ", ".join(sorted(TEXT_FIELD_TYPES))
_IMAGE_TYPES: Final[str] = ", ".join(sorted(IMAGE_FIELD_TYPES))
_ADVERTISER_LINKS: Final[str] = (
    "asset_group_asset.status = ENABLED AND asset_group_asset.source = ADVERTISER"
)


def escape(value: str) -> str:
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return value


def quoted_list(values: Sequence[str]) -> str:
    return ", ".join(f"'{escape(value)}'" for value in values)


def chunked[T](values: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(values), size):
        yield values[start : start + size]


def account_timezone() -> str:
    return "SELECT customer.time_zone FROM customer LIMIT 1"


def campaigns_by_name(names: Sequence[str]) -> str:
    return (
        "SELECT campaign.id, campaign.name, campaign.resource_name FROM campaign "
        f"WHERE campaign.name IN ({quoted_list(names)})"
    )


def enabled_asset_groups(campaign_resource_names: Sequence[str]) -> str:
    return (
        "SELECT asset_group.resource_name, asset_group.name, asset_group.campaign, "
        "campaign.id, campaign.name FROM asset_group "
        f"WHERE asset_group.campaign IN ({quoted_list(campaign_resource_names)}) "
        "AND asset_group.status = ENABLED"
    )


def headline_presence(group_resource_names: Sequence[str]) -> str:
    return (
        "SELECT asset_group_asset.asset_group FROM asset_group_asset "
        f"WHERE asset_group_asset.asset_group IN ({quoted_list(group_resource_names)}) "
        f"AND asset_group_asset.field_type = HEADLINE AND {_ADVERTISER_LINKS}"
    )


def text_links(group_resource_names: Sequence[str]) -> str:
    return (
        "SELECT asset_group_asset.asset_group, asset_group_asset.resource_name, "
        "asset_group_asset.asset, asset_group_asset.field_type, asset.text_asset.text "
        "FROM asset_group_asset "
        f"WHERE asset_group_asset.asset_group IN ({quoted_list(group_resource_names)}) "
        f"AND asset_group_asset.field_type IN ({_TEXT_TYPES}) AND {_ADVERTISER_LINKS}"
    )


def image_links(group_resource_names: Sequence[str]) -> str:
    return (
        "SELECT asset_group_asset.asset_group, asset_group_asset.resource_name, "
        "asset_group_asset.asset, asset_group_asset.field_type "
        "FROM asset_group_asset "
        f"WHERE asset_group_asset.asset_group IN ({quoted_list(group_resource_names)}) "
        f"AND asset_group_asset.field_type IN ({_IMAGE_TYPES}) AND {_ADVERTISER_LINKS}"
    )


def media_details(asset_ids: Sequence[str]) -> str:
    # Ids are digit-only by the time they get here; the list is unquoted int64s.
    return (
        "SELECT asset.id, asset.type, asset.image_asset.full_size.width_pixels, "
        "asset.image_asset.full_size.height_pixels FROM asset "
        f"WHERE asset.id IN ({', '.join(asset_ids)})"
    )


def links_in_group(group_resource_name: str, field_type: FieldType | None, *, text: bool) -> str:
    selected = (
        "asset_group_asset.resource_name, asset_group_asset.asset, "
        "asset_group_asset.field_type, asset.text_asset.text"
        if text
        else "asset_group_asset.resource_name, asset_group_asset.asset, "
        "asset_group_asset.field_type"
    )
    if field_type is not None:
        type_filter = f"asset_group_asset.field_type = {field_type}"
    else:
        type_filter = f"asset_group_asset.field_type IN ({_TEXT_TYPES if text else _IMAGE_TYPES})"
    return (
        f"SELECT {selected} FROM asset_group_asset "
        f"WHERE asset_group_asset.asset_group = '{escape(group_resource_name)}' "
        f"AND {type_filter} AND {_ADVERTISER_LINKS}"
    )


def text_asset_by_content(text: str) -> str:
    return (
        "SELECT asset.resource_name FROM asset "
        f"WHERE asset.type = TEXT AND asset.text_asset.text = '{escape(text)}' LIMIT 1"
    )


__all__ = [
    "account_timezone",
    "campaigns_by_name",
    "chunked",
    "enabled_asset_groups",
    "escape",
    "headline_presence",
    "image_links",
    "links_in_group",
    "media_details",
    "quoted_list",
    "text_asset_by_content",
    "text_links",
]
