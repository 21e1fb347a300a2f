from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from assetsched.adapters.sqlalchemy import SqlRunStateStore, shutdown, startup

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def run_state_store(sqlite_engine: Engine) -> Iterator[SqlRunStateStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlRunStateStore()
    finally:
        shutdown()
