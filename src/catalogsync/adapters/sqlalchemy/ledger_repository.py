"""Persist the staged change ledger as one JSON row per catalog kind."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, insert, select

from catalogsync.domain.errors import LedgerStorageError
from catalogsync.domain.model import ChangeKind, StagedChange
from catalogsync.domain.ports import LedgerRepository

from .mappings import ledger_state_table
from .state import SessionSource

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StagedChangeRecord(BaseModel):
    """Stored form of a :class:`StagedChange`; asset bytes are never part of it."""

    model_config = ConfigDict(extra="ignore")

    change_id: str
    kind: ChangeKind
    timestamp: datetime
    target_entity_id: str | None = None
    entity_snapshot: dict[str, Any]
    original_name: str | None = None
    has_pending_asset: bool = False
    asset_key: str | None = None

    @classmethod
    def from_change(cls, change: StagedChange) -> StagedChangeRecord:
        return cls(
            change_id=change.change_id,
            kind=change.kind,
            timestamp=change.timestamp,
            target_entity_id=change.target_entity_id,
            entity_snapshot=change.entity_snapshot,
            original_name=change.original_name,
            has_pending_asset=change.has_pending_asset,
            asset_key=change.asset_key,
        )

    def to_change(self) -> StagedChange:
        return StagedChange(
            change_id=self.change_id,
            kind=self.kind,
            timestamp=self.timestamp,
            target_entity_id=self.target_entity_id,
            entity_snapshot=self.entity_snapshot,
            original_name=self.original_name,
            has_pending_asset=self.has_pending_asset,
            asset_key=self.asset_key,
        )


_RECORDS = TypeAdapter(list[StagedChangeRecord])


def encode_ledger(changes: Sequence[StagedChange]) -> str:
    records = [StagedChangeRecord.from_change(change) for change in changes]
    return _RECORDS.dump_json(records).decode("utf-8")


def decode_ledger(payload: str) -> list[StagedChange]:
    try:
        records = _RECORDS.validate_json(payload)
    except PydanticValidationError as exc:
        raise LedgerStorageError(f"Stored ledger is unreadable: {exc}") from exc
    return [record.to_change() for record in records]


class SqlAlchemyLedgerRepository:
    def __init__(self, key: str, *, engine: Engine | None = None) -> None:
        self.key = key
        self._sessions = SessionSource(engine)

    def load(self) -> list[StagedChange]:
        statement = select(ledger_state_table.c.payload).where(ledger_state_table.c.key == self.key)
        with self._sessions() as session:
            payload = session.scalars(statement).one_or_none()
        if payload is None:
            return []
        changes = decode_ledger(payload)
        log.debug("Loaded %s staged changes for %s", len(changes), self.key)
        return changes

    def save(self, changes: Sequence[StagedChange]) -> None:
        if not changes:
            self.clear()
            return
        values = {
            "key": self.key,
            "payload": encode_ledger(changes),
            "updated_at": datetime.now(UTC),
        }
        with self._sessions() as session, session.begin():
            session.execute(delete(ledger_state_table).where(ledger_state_table.c.key == self.key))
            session.execute(insert(ledger_state_table).values(**values))

    def clear(self) -> None:
        with self._sessions() as session, session.begin():
            session.execute(delete(ledger_state_table).where(ledger_state_table.c.key == self.key))


if TYPE_CHECKING:
    _repository_check: LedgerRepository = SqlAlchemyLedgerRepository("staged_changes:products")
