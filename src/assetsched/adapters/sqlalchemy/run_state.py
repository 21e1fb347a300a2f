"""SQLAlchemy-backed run-state store: last schedule fingerprint and a run log."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from assetsched.config.storage import get_database_config

from .mappings import (
    RunLogEntry,
    RunStateEntry,
    create_all_tables,
    run_log_table,
    start_mappers,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from assetsched.domain.ports.storage import RunRecord, RunStateStore

log = getLogger(__name__)

FINGERPRINT_KEY: Final[str] = "schedule_fingerprint"


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy run-state store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call assetsched.adapters.sqlalchemy."
                "run_state.startup() before opening the run-state store."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, metadata, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    start_mappers()
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlRunStateStore:
    """Run-state store; every call runs in its own short transaction."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory

    def load_fingerprint(self) -> str | None:
        with self.session_factory() as session:
            entry = session.get(RunStateEntry, FINGERPRINT_KEY)
            return entry.value if entry is not None else None

    def save_fingerprint(self, fingerprint: str) -> None:
        with self.session_factory.begin() as session:
            entry = session.get(RunStateEntry, FINGERPRINT_KEY)
            now = datetime.now(UTC)
            if entry is None:
                session.add(RunStateEntry(key=FINGERPRINT_KEY, value=fingerprint, updated_at=now))
            else:
                entry.value = fingerprint
                entry.updated_at = now
        log.debug("Saved schedule fingerprint %s", fingerprint)

    def record_run(self, record: RunRecord) -> None:
        with self.session_factory.begin() as session:
            session.add(
                RunLogEntry(
                    finished_at=record.finished_at,
                    outcome=record.outcome,
                    fingerprint=record.fingerprint,
                    summary=record.summary,
                )
            )

    def recent_runs(self, limit: int = 10) -> list[RunLogEntry]:
        with self.session_factory() as session:
            statement = select(RunLogEntry).order_by(run_log_table.c.id.desc()).limit(limit)
            return list(session.scalars(statement))


if TYPE_CHECKING:
    _store_check: RunStateStore = SqlRunStateStore()
