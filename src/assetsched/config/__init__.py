"""Application configuration helpers."""

from __future__ import annotations

from .ads import ADS_BASE_URL, AdsConfig, get_ads_config, normalize_customer_id
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, TransportRetryPolicy
from .logging import configure_logging
from .scheduler import SNAPSHOT_BATCH_SIZE, SchedulerConfig, get_scheduler_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ADS_BASE_URL",
    "SNAPSHOT_BATCH_SIZE",
    "AdsConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "SchedulerConfig",
    "StorageConfig",
    "TransportRetryPolicy",
    "configure_logging",
    "get_ads_config",
    "get_database_config",
    "get_scheduler_config",
    "get_storage_config",
    "normalize_customer_id",
    "optional_env_var",
    "require_env_vars",
]
