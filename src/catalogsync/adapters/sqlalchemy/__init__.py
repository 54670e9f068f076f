"""SQLAlchemy adapter package for the local staging database."""

from __future__ import annotations

from .blob_store import SqlAlchemyBlobStore
from .ledger_repository import SqlAlchemyLedgerRepository, StagedChangeRecord
from .mappings import create_all_tables, ledger_state_table, metadata, staged_blob_table
from .state import StartupError, is_started, shutdown, startup

__all__ = [
    "SqlAlchemyBlobStore",
    "SqlAlchemyLedgerRepository",
    "StagedChangeRecord",
    "StartupError",
    "create_all_tables",
    "is_started",
    "ledger_state_table",
    "metadata",
    "shutdown",
    "staged_blob_table",
    "startup",
]
