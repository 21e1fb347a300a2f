"""Advertising platform configuration values."""

from __future__ import annotations

from dataclasses import dataclass, replace

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

ADS_API_VERSION = "v21"
ADS_BASE_URL = f"https://googleads.googleapis.com/{ADS_API_VERSION}/"
OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
ADS_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class AdsConfig:
    """Credentials and endpoint settings for the advertising platform API."""

    developer_token: str
    customer_id: str
    client_id: str
    client_secret: str
    refresh_token: str
    resilience: ResilienceConfig
    login_customer_id: str | None = None
    token_url: str = OAUTH_TOKEN_URL

    @property
    def mutate_resilience(self) -> ResilienceConfig:
        """The read settings without transport retries, so a mutation is sent once."""

        return replace(
            self.resilience,
            name=f"{self.resilience.name}-mutate",
            retry=replace(self.resilience.retry, total=0),
        )


def normalize_customer_id(value: str) -> str:
    return value.replace("-", "").strip()


def get_ads_config(*, resilience: ResilienceConfig | None = None) -> AdsConfig:
    values = require_env_vars(
        (
            "ADS_DEVELOPER_TOKEN",
            "ADS_CUSTOMER_ID",
            "ADS_CLIENT_ID",
            "ADS_CLIENT_SECRET",
            "ADS_REFRESH_TOKEN",
        )
    )
    login_customer_id = optional_env_var("ADS_LOGIN_CUSTOMER_ID")
    return AdsConfig(
        developer_token=values["ADS_DEVELOPER_TOKEN"],
        customer_id=normalize_customer_id(values["ADS_CUSTOMER_ID"]),
        client_id=values["ADS_CLIENT_ID"],
        client_secret=values["ADS_CLIENT_SECRET"],
        refresh_token=values["ADS_REFRESH_TOKEN"],
        login_customer_id=normalize_customer_id(login_customer_id) if login_customer_id else None,
        resilience=resilience
        or ResilienceConfig(
            name="ads",
            base_url=ADS_BASE_URL,
            timeout_seconds=ADS_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        ),
    )
