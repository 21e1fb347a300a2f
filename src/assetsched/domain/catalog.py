"""Read-only snapshot of the live catalog, fetched once per run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .types import IMAGE_FIELD_TYPES, TEXT_FIELD_TYPES, SubCollectionRef

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .types import FieldType


def normalize_name(value: str) -> str:
    return value.strip().lower()


def asset_id_from_resource(resource_name: str) -> str:
    """``customers/1/assets/555`` -> ``555``."""

    return resource_name.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class LinkedMember:
    """A member currently linked into a sub-collection.

    ``link_id`` identifies the link itself and is what an unlink targets;
    ``member_id`` identifies the underlying member resource.
    """

    link_id: str
    member_id: str
    field_type: FieldType
    text: str | None = None

    @property
    def asset_id(self) -> str:
        return asset_id_from_resource(self.member_id)


@dataclass(frozen=True, slots=True)
class SubCollection:
    sub_collection_id: str
    name: str
    collection_id: str
    collection_name: str = ""
    # Feed-only groups carry no advertiser headline and are never targeted.
    placeholder: bool = False

    @property
    def ref(self) -> SubCollectionRef:
        return SubCollectionRef(sub_collection_id=self.sub_collection_id, name=self.name)


@dataclass(frozen=True, slots=True)
class SubCollectionState:
    sub_collection: SubCollection
    members: tuple[LinkedMember, ...] = ()

    def of_type(self, field_type: FieldType) -> list[LinkedMember]:
        return [member for member in self.members if member.field_type is field_type]

    def text_members(self) -> list[LinkedMember]:
        return [member for member in self.members if member.field_type in TEXT_FIELD_TYPES]

    def image_members(self) -> list[LinkedMember]:
        return [member for member in self.members if member.field_type in IMAGE_FIELD_TYPES]

    def find_text(self, field_type: FieldType, text: str) -> LinkedMember | None:
        # Exact, case-sensitive payload match, as the platform compares it.
        for member in self.of_type(field_type):
            if member.text == text:
                return member
        return None

    def find_image(self, asset_id: str) -> LinkedMember | None:
        for member in self.image_members():
            if member.asset_id == asset_id:
                return member
        return None


@dataclass(frozen=True, slots=True)
class MediaDetails:
    """Type and pixel dimensions of a member resource referenced by id."""

    asset_id: str
    asset_type: str
    width: int = 0
    height: int = 0

    @property
    def is_image(self) -> bool:
        return self.asset_type == "IMAGE"


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Collections by name, their enabled sub-collections and current members."""

    collection_ids: Mapping[str, str] = field(default_factory=dict)
    sub_collections: Mapping[str, SubCollectionState] = field(default_factory=dict)
    media: Mapping[str, MediaDetails] = field(default_factory=dict)

    def collection_id(self, name: str) -> str | None:
        return self.collection_ids.get(name)

    def state_for(self, sub_collection_id: str) -> SubCollectionState | None:
        return self.sub_collections.get(sub_collection_id)

    def media_for(self, asset_id: str) -> MediaDetails | None:
        return self.media.get(asset_id)

    def target_sub_collections(
        self, collection_name: str, sub_collection_name: str = ""
    ) -> list[SubCollectionState]:
        """Resolve the sub-collections a row addresses.

        A blank ``sub_collection_name`` selects every non-placeholder sub-collection
        of the collection; otherwise names are compared trimmed and case-folded.
        """

        collection_id = self.collection_id(collection_name)
        if collection_id is None:
            return []
        wanted = normalize_name(sub_collection_name)
        targets: list[SubCollectionState] = []
        for state in self.sub_collections.values():
            group = state.sub_collection
            if group.collection_id != collection_id or group.placeholder:
                continue
            if wanted and normalize_name(group.name) != wanted:
                continue
            targets.append(state)
        return targets


__all__ = [
    "CatalogSnapshot",
    "LinkedMember",
    "MediaDetails",
    "SubCollection",
    "SubCollectionState",
    "asset_id_from_resource",
    "normalize_name",
]
