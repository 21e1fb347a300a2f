"""HTTP client for the advertising platform REST API."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from assetsched.adapters.http_resilience import ResilientClient
from assetsched.config.ads import ADS_BASE_URL, AdsConfig, get_ads_config
from assetsched.config.scheduler import SNAPSHOT_BATCH_SIZE
from assetsched.domain.ports.platform import PlatformError
from assetsched.domain.retry import QUERY_RETRY, RetryPolicy, run_with_retry
from assetsched.domain.types import MemberKind

from . import queries
from .schema import SearchResponse, SearchRow, TokenResponse
from .translator import (
    build_snapshot,
    error_messages,
    linked_member,
    mutate_operation,
    mutation_result,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from assetsched.config.http_resilience import ResilienceConfig
    from assetsched.domain.catalog import CatalogSnapshot, LinkedMember
    from assetsched.domain.ports.platform import AdsPlatform, Mutation, MutationResult
    from assetsched.domain.retry import Sleep
    from assetsched.domain.types import FieldType

log = getLogger(__name__)

# Refresh the access token this long before the platform says it expires.
_TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class AdsAPIError(PlatformError):
    """Raised when the platform rejects a request; carries its parsed messages."""

    def __init__(self, messages: Sequence[str], *, status_code: int | None = None) -> None:
        super().__init__("; ".join(messages))
        self.messages = tuple(messages)
        self.status_code = status_code


@dataclass(slots=True)
class AdsClient:
    """Blocking adapter over the async REST client, one event loop per port call.

    Whole snapshot and timezone reads are retried on transient query errors; other
    calls surface failures to the caller, which owns their retry policy.
    """

    config: AdsConfig = field(default_factory=get_ads_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    batch_size: int = SNAPSHOT_BATCH_SIZE
    query_retry: RetryPolicy = QUERY_RETRY
    sleep: Sleep = time.sleep
    _access_token: str | None = field(default=None, init=False, repr=False)
    _token_expires_at: float = field(default=0.0, init=False, repr=False)

    @property
    def customer_path(self) -> str:
        return f"customers/{self.config.customer_id}"

    # Port

    def account_timezone(self) -> str:
        async def fetch(client: ResilientClient) -> str:
            rows = await self._search(client, queries.account_timezone())
            for row in rows:
                if row.customer is not None and row.customer.time_zone:
                    return row.customer.time_zone
            raise AdsAPIError(["Account timezone not returned"])

        return self._read_with_retry(fetch, describe="account timezone query")

    def query_snapshot(
        self, collection_names: Sequence[str], image_ids: Sequence[str] = ()
    ) -> CatalogSnapshot:
        async def fetch(client: ResilientClient) -> CatalogSnapshot:
            return await self._fetch_snapshot(client, collection_names, image_ids)

        return self._read_with_retry(fetch, describe="catalog snapshot")

    def list_members(
        self, sub_collection_id: str, kind: MemberKind, field_type: FieldType | None = None
    ) -> list[LinkedMember]:
        query = queries.links_in_group(
            sub_collection_id, field_type, text=kind is MemberKind.TEXT
        )
        rows = self._run(lambda client: self._search(client, query))
        members: list[LinkedMember] = []
        for row in rows:
            member = linked_member(row)
            if member is not None:
                members.append(member)
        return members

    def find_text_member(self, text: str) -> str | None:
        query = queries.text_asset_by_content(text)
        rows = self._run(lambda client: self._search(client, query))
        for row in rows:
            if row.asset is not None and row.asset.resource_name:
                return row.asset.resource_name
        return None

    def image_member_id(self, asset_id: str) -> str:
        return f"{self.customer_path}/assets/{asset_id}"

    def mutate(self, mutation: Mutation) -> MutationResult:
        body = {"mutateOperations": [mutate_operation(mutation)], "partialFailure": True}

        async def send(client: ResilientClient) -> MutationResult:
            payload = await self._post(client, f"{self.customer_path}/googleAds:mutate", body)
            try:
                return mutation_result(payload)
            except ValidationError as exc:
                raise AdsAPIError([f"Unexpected mutate response: {exc}"]) from exc

        # One send per call; the caller's retry policy owns the attempt budget.
        return self._run(send, self.config.mutate_resilience)

    # Plumbing

    def _run[T](
        self,
        call: Callable[[ResilientClient], Awaitable[T]],
        resilience: ResilienceConfig | None = None,
    ) -> T:
        async def runner() -> T:
            async with self.client_factory(resilience or self.config.resilience) as client:
                return await call(client)

        return asyncio.run(runner())

    def _read_with_retry[T](
        self, call: Callable[[ResilientClient], Awaitable[T]], *, describe: str
    ) -> T:
        attempted = run_with_retry(
            lambda: self._run(call), self.query_retry, sleep=self.sleep, describe=describe
        )
        if not attempted.ok or attempted.value is None:
            raise AdsAPIError([f"{describe} failed: {attempted.error}"])
        return attempted.value

    async def _fetch_snapshot(
        self,
        client: ResilientClient,
        collection_names: Sequence[str],
        image_ids: Sequence[str],
    ) -> CatalogSnapshot:
        names = sorted({name for name in collection_names if name})
        campaign_rows = await self._search_chunked(client, names, queries.campaigns_by_name)
        campaign_resources = sorted(
            {
                row.campaign.resource_name
                for row in campaign_rows
                if row.campaign is not None and row.campaign.resource_name
            }
        )
        group_rows = await self._search_chunked(
            client, campaign_resources, queries.enabled_asset_groups
        )
        group_resources = sorted(
            {
                row.asset_group.resource_name
                for row in group_rows
                if row.asset_group is not None and row.asset_group.resource_name
            }
        )
        headline_rows = await self._search_chunked(
            client, group_resources, queries.headline_presence
        )
        link_rows = await self._search_chunked(client, group_resources, queries.text_links)
        link_rows += await self._search_chunked(client, group_resources, queries.image_links)
        media_ids = sorted({asset_id for asset_id in image_ids if asset_id.isdigit()})
        media_rows = await self._search_chunked(client, media_ids, queries.media_details)
        log.info(
            "Snapshot: %d collection(s), %d sub-collection(s), %d link(s), %d media item(s)",
            len(campaign_rows),
            len(group_rows),
            len(link_rows),
            len(media_rows),
        )
        return build_snapshot(
            campaign_rows=campaign_rows,
            group_rows=group_rows,
            headline_rows=headline_rows,
            link_rows=link_rows,
            media_rows=media_rows,
        )

    async def _search_chunked(
        self,
        client: ResilientClient,
        values: Sequence[str],
        build_query: Callable[[Sequence[str]], str],
    ) -> list[SearchRow]:
        rows: list[SearchRow] = []
        for chunk in queries.chunked(values, self.batch_size):
            rows.extend(await self._search(client, build_query(chunk)))
        return rows

    async def _search(self, client: ResilientClient, query: str) -> list[SearchRow]:
        rows: list[SearchRow] = []
        page_token: str | None = None
        while True:
            body: dict[str, str] = {"query": query}
            if page_token:
                body["pageToken"] = page_token
            payload = await self._post(client, f"{self.customer_path}/googleAds:search", body)
            try:
                page = SearchResponse.model_validate(payload)
            except ValidationError as exc:
                raise AdsAPIError([f"Unexpected search response: {exc}"]) from exc
            rows.extend(page.results)
            if not page.next_page_token:
                return rows
            page_token = page.next_page_token

    async def _post(self, client: ResilientClient, path: str, body: object) -> object:
        headers = await self._headers(client)
        try:
            response = await client.post(self._url(path), json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise AdsAPIError([f"Request to {path} failed: {exc}"]) from exc
        if response.is_error:
            messages = error_messages(response)
            log.error("Platform error %s on %s: %s", response.status_code, path, messages)
            raise AdsAPIError(messages, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise AdsAPIError([f"Malformed response from {path}: {exc}"]) from exc

    def _url(self, path: str) -> str:
        base_url = self.config.resilience.base_url or ADS_BASE_URL
        return f"{base_url}{path}"

    async def _headers(self, client: ResilientClient) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {await self._token(client)}",
            "developer-token": self.config.developer_token,
        }
        if self.config.login_customer_id:
            headers["login-customer-id"] = self.config.login_customer_id
        return headers

    async def _token(self, client: ResilientClient) -> str:
        if self._access_token is not None and time.monotonic() < self._token_expires_at:
            return self._access_token
        try:
            response = await client.post(
                self.config.token_url,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "refresh_token": self.config.refresh_token,
                },
            )
        except httpx.HTTPError as exc:
            raise AdsAPIError([f"Token refresh failed: {exc}"]) from exc
        if response.is_error:
            raise AdsAPIError(
                [f"Token refresh failed: HTTP {response.status_code}"],
                status_code=response.status_code,
            )
        try:
            token = TokenResponse.model_validate(response.json())
        except ValueError as exc:
            raise AdsAPIError([f"Token refresh failed: malformed response ({exc})"]) from exc
        self._access_token = token.access_token
        self._token_expires_at = (
            time.monotonic() + token.expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS
        )
        log.debug("Refreshed platform access token")
        return token.access_token


if TYPE_CHECKING:
    _platform_check: AdsPlatform = AdsClient()
