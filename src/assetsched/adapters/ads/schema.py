"""Pydantic models describing the advertising platform REST payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def _to_str(value: object) -> object:
    if isinstance(value, int):
        return str(value)
    return value


def _to_int(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return int(stripped) if stripped else 0
    return value


class AdsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class CustomerPayload(AdsBaseModel):
    time_zone: str = ""


class CampaignPayload(AdsBaseModel):
    resource_name: str = ""
    id: str = ""
    name: str = ""

    _normalize_id = field_validator("id", mode="before")(_to_str)


class AssetGroupPayload(AdsBaseModel):
    resource_name: str = ""
    name: str = ""
    campaign: str | None = None
    status: str = ""


class TextAssetPayload(AdsBaseModel):
    text: str = ""


class ImageDimensionsPayload(AdsBaseModel):
    width_pixels: int = 0
    height_pixels: int = 0

    _normalize_pixels = field_validator("width_pixels", "height_pixels", mode="before")(_to_int)


class ImageAssetPayload(AdsBaseModel):
    full_size: ImageDimensionsPayload | None = None


class AssetPayload(AdsBaseModel):
    resource_name: str = ""
    id: str = ""
    type: str = ""
    text_asset: TextAssetPayload | None = None
    image_asset: ImageAssetPayload | None = None

    _normalize_id = field_validator("id", mode="before")(_to_str)


class AssetGroupAssetPayload(AdsBaseModel):
    resource_name: str = ""
    asset_group: str = ""
    asset: str = ""
    field_type: str = ""
    status: str = ""


class SearchRow(AdsBaseModel):
    customer: CustomerPayload | None = None
    campaign: CampaignPayload | None = None
    asset_group: AssetGroupPayload | None = None
    asset: AssetPayload | None = None
    asset_group_asset: AssetGroupAssetPayload | None = None


class SearchResponse(AdsBaseModel):
    results: list[SearchRow] = []
    next_page_token: str | None = None


class AdsErrorPayload(AdsBaseModel):
    error_code: dict[str, str] = {}
    message: str = ""


class ErrorDetailPayload(AdsBaseModel):
    errors: list[AdsErrorPayload] = []


class StatusPayload(AdsBaseModel):
    code: int = 0
    message: str = ""
    status: str = ""
    details: list[ErrorDetailPayload] = []

    def messages(self) -> tuple[str, ...]:
        """Flatten the status into readable messages, error codes included."""

        collected: list[str] = []
        for detail in self.details:
            for error in detail.errors:
                codes = ", ".join(error.error_code.values())
                collected.append(f"{error.message} ({codes})" if codes else error.message)
        if not collected:
            head = ": ".join(part for part in (self.status, self.message) if part)
            collected.append(head or f"HTTP {self.code}")
        return tuple(collected)


class ErrorResponse(AdsBaseModel):
    error: StatusPayload


class ResourceResult(AdsBaseModel):
    resource_name: str = ""


class MutateOperationResponse(AdsBaseModel):
    asset_result: ResourceResult | None = None
    asset_group_asset_result: ResourceResult | None = None

    @property
    def resource_name(self) -> str | None:
        for result in (self.asset_result, self.asset_group_asset_result):
            if result is not None and result.resource_name:
                return result.resource_name
        return None


class MutateResponse(AdsBaseModel):
    mutate_operation_responses: list[MutateOperationResponse] = []
    partial_failure_error: StatusPayload | None = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int = 3600
