"""SQLAlchemy adapter package for the run-state store."""

from __future__ import annotations

from .mappings import (
    RunLogEntry,
    RunStateEntry,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .run_state import SqlRunStateStore, StartupError, is_started, shutdown, startup

__all__ = [
    "RunLogEntry",
    "RunStateEntry",
    "SqlRunStateStore",
    "StartupError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
