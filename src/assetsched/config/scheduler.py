"""Pipeline defaults: horizon, windows, limits, retry, pacing and verification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from assetsched.domain.execution import Pacing
from assetsched.domain.horizon import DEFAULT_HORIZON_DAYS
from assetsched.domain.limits import ValidationLimits
from assetsched.domain.retry import MUTATION_RETRY, QUERY_RETRY, RetryPolicy
from assetsched.domain.time_windows import WindowConfig
from assetsched.domain.verification import VerificationPolicy

from .env import optional_env_var
from .errors import ConfigurationError

SNAPSHOT_BATCH_SIZE: Final[int] = 200


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    horizon_days: int = DEFAULT_HORIZON_DAYS
    timezone: str | None = None
    windows: WindowConfig = field(default_factory=WindowConfig)
    limits: ValidationLimits = field(default_factory=ValidationLimits)
    retry: RetryPolicy = MUTATION_RETRY
    query_retry: RetryPolicy = QUERY_RETRY
    pacing: Pacing = field(default_factory=Pacing)
    verification: VerificationPolicy = field(default_factory=VerificationPolicy)
    batch_size: int = SNAPSHOT_BATCH_SIZE
    preview_only: bool = False


def get_scheduler_config(
    *,
    horizon_days: int | None = None,
    timezone: str | None = None,
    preview_only: bool = False,
) -> SchedulerConfig:
    """Build the scheduler settings, letting explicit arguments win over the environment."""

    days = DEFAULT_HORIZON_DAYS if horizon_days is None else horizon_days
    if days < 0:
        raise ConfigurationError(f"Horizon days must not be negative: {days}")
    return SchedulerConfig(
        horizon_days=days,
        timezone=timezone or optional_env_var("ASSETSCHED_TIMEZONE"),
        preview_only=preview_only,
    )
