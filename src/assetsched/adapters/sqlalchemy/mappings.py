"""SQLAlchemy mapping metadata for persisted run state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Dialect, Integer, String, Table, Text, TypeDecorator, orm

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


@dataclass
class RunStateEntry:
    """A named value carried from one run to the next."""

    key: str
    value: str
    updated_at: datetime


@dataclass
class RunLogEntry:
    finished_at: datetime
    outcome: str
    summary: str
    fingerprint: str | None = None
    id: int | None = None


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "pk": "pk_%(table_name)s",
}

run_state_table = Table(
    "run_state",
    mapper_registry.metadata,
    Column("key", String(64), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

run_log_table = Table(
    "run_log",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("finished_at", UTCDateTime(), nullable=False, index=True),
    Column("outcome", String(16), nullable=False),
    Column("fingerprint", String(64), nullable=True),
    Column("summary", Text, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the run-state entities."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(RunStateEntry, run_state_table)
    mapper_registry.map_imperatively(RunLogEntry, run_log_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)


__all__ = [
    "RunLogEntry",
    "RunStateEntry",
    "UTCDateTime",
    "create_all_tables",
    "mapper_registry",
    "run_log_table",
    "run_state_table",
    "start_mappers",
]
