"""Port for the remote collection-management platform."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from assetsched.domain.catalog import CatalogSnapshot, LinkedMember
    from assetsched.domain.types import FieldType, MemberKind


class PlatformError(RuntimeError):
    """A platform call failed; the message carries the platform's own error text."""


@dataclass(frozen=True, slots=True)
class CreateTextMember:
    text: str


@dataclass(frozen=True, slots=True)
class LinkMember:
    sub_collection_id: str
    member_id: str
    field_type: FieldType


@dataclass(frozen=True, slots=True)
class UnlinkMember:
    link_id: str


type Mutation = CreateTextMember | LinkMember | UnlinkMember


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Outcome of one partial-failure-tolerant mutate call."""

    success: bool
    resource_name: str | None = None
    errors: tuple[str, ...] = ()

    @property
    def error_text(self) -> str:
        return "; ".join(self.errors) or "unknown error"


@runtime_checkable
class AdsPlatform(Protocol):
    """Blocking, one-call-at-a-time access to the platform.

    Read methods raise :class:`PlatformError` when the platform rejects the query.
    ``mutate`` reports per-operation failures through :class:`MutationResult` and
    raises only when the call itself could not be made.
    """

    def account_timezone(self) -> str: ...

    def query_snapshot(
        self, collection_names: Sequence[str], image_ids: Sequence[str] = ()
    ) -> CatalogSnapshot: ...

    def list_members(
        self, sub_collection_id: str, kind: MemberKind, field_type: FieldType | None = None
    ) -> list[LinkedMember]: ...

    def find_text_member(self, text: str) -> str | None: ...

    def image_member_id(self, asset_id: str) -> str: ...

    def mutate(self, mutation: Mutation) -> MutationResult: ...


__all__ = [
    "AdsPlatform",
    "CreateTextMember",
    "LinkMember",
    "Mutation",
    "MutationResult",
    "PlatformError",
    "UnlinkMember",
]
