"""Engine lifecycle for the SQLAlchemy staging adapters."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalogsync.config import get_staging_uri

from .mappings import create_all_tables

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the staging database is initialised twice without ``force``."""


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
            # First use without an explicit startup: open the configured database.
            startup()
        assert self._engine is not None
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Create the engine and the staging tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "Staging database already initialised. Pass force=True to reconfigure."
        )
    if _STATE.engine is not None and engine is not _STATE.engine:
        _STATE.engine.dispose()

    resolved_engine = engine or _create_engine(database_uri or get_staging_uri())
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine
    log.info("Staging database at %s", resolved_engine.url)
    return resolved_engine


def _create_engine(uri: str) -> Engine:
    url = make_url(uri)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # Blob work runs in worker threads; they must all see the same in-memory database.
        return create_engine(
            uri,
            future=True,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(uri, future=True)


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def session_factory() -> sessionmaker[Session]:
    return _STATE.session_factory


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SessionSource:
    """Sessions on an explicit engine, or on the adapter-wide one when none is given."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine
        self._factory: sessionmaker[Session] | None = None

    def __call__(self) -> Session:
        if self._engine is None:
            return session_factory()()
        if self._factory is None:
            create_all_tables(self._engine)
            self._factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._factory()
