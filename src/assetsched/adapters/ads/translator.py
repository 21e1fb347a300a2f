"""Translate platform payloads into catalog entities and mutations into payloads."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from assetsched.domain.catalog import (
    CatalogSnapshot,
    LinkedMember,
    MediaDetails,
    SubCollection,
    SubCollectionState,
)
from assetsched.domain.ports.platform import (
    CreateTextMember,
    LinkMember,
    MutationResult,
    UnlinkMember,
)
from assetsched.domain.types import FieldType

from .schema import ErrorResponse, MutateResponse

if TYPE_CHECKING:
    from collections.abc import Iterable

    import httpx

    from assetsched.domain.ports.platform import Mutation

    from .schema import SearchRow

log = getLogger(__name__)


def parse_field_type(value: str) -> FieldType | None:
    try:
        return FieldType(value)
    except ValueError:
        return None


def linked_member(row: SearchRow) -> LinkedMember | None:
    link = row.asset_group_asset
    if link is None:
        return None
    field_type = parse_field_type(link.field_type)
    if field_type is None:
        log.debug("Ignoring link %s with field type %r", link.resource_name, link.field_type)
        return None
    text = None
    if row.asset is not None and row.asset.text_asset is not None:
        text = row.asset.text_asset.text
    return LinkedMember(
        link_id=link.resource_name, member_id=link.asset, field_type=field_type, text=text
    )


def collection_ids(rows: Iterable[SearchRow]) -> dict[str, str]:
    """Campaign name -> campaign id. The first campaign seen wins on duplicate names."""

    ids: dict[str, str] = {}
    for row in rows:
        if row.campaign is None or not row.campaign.name:
            continue
        ids.setdefault(row.campaign.name, row.campaign.id)
    return ids


def sub_collections(
    rows: Iterable[SearchRow], *, with_headlines: set[str]
) -> dict[str, SubCollection]:
    groups: dict[str, SubCollection] = {}
    for row in rows:
        group = row.asset_group
        if group is None or not group.resource_name:
            continue
        campaign = row.campaign
        groups[group.resource_name] = SubCollection(
            sub_collection_id=group.resource_name,
            name=group.name,
            collection_id=campaign.id if campaign is not None else "",
            collection_name=campaign.name if campaign is not None else "",
            placeholder=group.resource_name not in with_headlines,
        )
    return groups


def media_details(rows: Iterable[SearchRow]) -> dict[str, MediaDetails]:
    media: dict[str, MediaDetails] = {}
    for row in rows:
        asset = row.asset
        if asset is None or not asset.id:
            continue
        width = height = 0
        if asset.image_asset is not None and asset.image_asset.full_size is not None:
            width = asset.image_asset.full_size.width_pixels
            height = asset.image_asset.full_size.height_pixels
        media[asset.id] = MediaDetails(
            asset_id=asset.id, asset_type=asset.type, width=width, height=height
        )
    return media


def build_snapshot(
    *,
    campaign_rows: Iterable[SearchRow],
    group_rows: Iterable[SearchRow],
    headline_rows: Iterable[SearchRow],
    link_rows: Iterable[SearchRow],
    media_rows: Iterable[SearchRow] = (),
) -> CatalogSnapshot:
    with_headlines = {
        row.asset_group_asset.asset_group
        for row in headline_rows
        if row.asset_group_asset is not None
    }
    groups = sub_collections(group_rows, with_headlines=with_headlines)
    members: dict[str, list[LinkedMember]] = {group_id: [] for group_id in groups}
    for row in link_rows:
        member = linked_member(row)
        if member is None or row.asset_group_asset is None:
            continue
        bucket = members.get(row.asset_group_asset.asset_group)
        if bucket is not None:
            bucket.append(member)
    return CatalogSnapshot(
        collection_ids=collection_ids(campaign_rows),
        sub_collections={
            group_id: SubCollectionState(sub_collection=group, members=tuple(members[group_id]))
            for group_id, group in groups.items()
        },
        media=media_details(media_rows),
    )


def mutate_operation(mutation: Mutation) -> dict[str, object]:
    match mutation:
        case CreateTextMember(text=text):
            return {"assetOperation": {"create": {"textAsset": {"text": text}}}}
        case LinkMember(sub_collection_id=group, member_id=asset, field_type=field_type):
            return {
                "assetGroupAssetOperation": {
                    "create": {
                        "assetGroup": group,
                        "asset": asset,
                        "fieldType": field_type.value,
                    }
                }
            }
        case UnlinkMember(link_id=link_id):
            return {"assetGroupAssetOperation": {"remove": link_id}}


def mutation_result(payload: object) -> MutationResult:
    response = MutateResponse.model_validate(payload)
    failure = response.partial_failure_error
    if failure is not None and (failure.code or failure.details or failure.message):
        return MutationResult(success=False, errors=failure.messages())
    resource_name = None
    if response.mutate_operation_responses:
        resource_name = response.mutate_operation_responses[0].resource_name
    return MutationResult(success=True, resource_name=resource_name)


def error_messages(response: httpx.Response) -> tuple[str, ...]:
    """Readable messages for a failed HTTP response, platform error codes included."""

    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and "error" in payload:
        try:
            return ErrorResponse.model_validate(payload).error.messages()
        except ValidationError:
            log.debug("Unparseable error payload: %s", payload)
    text = response.text.strip()
    return (f"HTTP {response.status_code}: {text}" if text else f"HTTP {response.status_code}",)


__all__ = [
    "build_snapshot",
    "collection_ids",
    "error_messages",
    "linked_member",
    "media_details",
    "mutate_operation",
    "mutation_result",
    "parse_field_type",
    "sub_collections",
]
