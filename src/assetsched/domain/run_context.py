"""Run-scoped time context, built once at run start and passed to every stage."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _resolve_timezone(value: str | tzinfo) -> tzinfo:
    if isinstance(value, tzinfo):
        return value
    try:
        return ZoneInfo(value)
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {value}") from exc


@dataclass(frozen=True, slots=True)
class RunContext:
    """The platform timezone and the instant the run is evaluated at."""

    timezone: tzinfo
    now: datetime

    @classmethod
    def create(cls, timezone: str | tzinfo, *, clock: Clock = _utcnow) -> RunContext:
        resolved = _resolve_timezone(timezone)
        instant = clock()
        if instant.tzinfo is None:
            raise ValueError("Clock must return timezone-aware datetimes")
        return cls(timezone=resolved, now=instant.astimezone(resolved))

    @property
    def today(self) -> date:
        return self.now.date()

    @property
    def minute_of_day(self) -> int:
        return self.now.hour * 60 + self.now.minute

    @property
    def timestamp(self) -> str:
        return self.now.strftime("%Y-%m-%d %H:%M:%S")


__all__ = ["Clock", "RunContext"]
