from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from catalogsync.adapters.sqlalchemy import create_all_tables, shutdown, startup

os.environ.setdefault("CATALOGSYNC_STAGING_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def staging_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'staging.db'}", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def started_staging(staging_engine: Engine) -> Iterator[Engine]:
    """Adapter-wide staging state bound to a throwaway database."""

    startup(engine=staging_engine, force=True)
    try:
        yield staging_engine
    finally:
        shutdown()
