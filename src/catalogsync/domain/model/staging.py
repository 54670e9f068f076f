"""Staged change records kept in the local ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

if TYPE_CHECKING:
    from datetime import datetime


class ChangeKind(StrEnum):
    NEW = "new"
    MODIFY = "modify"
    DELETE = "delete"


def new_change_id() -> str:
    return f"change_{uuid4().hex}"


@dataclass(slots=True, kw_only=True)
class StagedChange:
    """One pending edit, replayed against the remote document on publish.

    ``original_name`` is the merge key: the remote documents are keyed by display
    name, so a rename must still find the record under the name it had when the
    change was staged.
    """

    kind: ChangeKind
    timestamp: datetime
    target_entity_id: str | None
    entity_snapshot: dict[str, Any]
    change_id: str = field(default_factory=new_change_id)
    original_name: str | None = None
    has_pending_asset: bool = False
    asset_key: str | None = None

    @property
    def snapshot_name(self) -> str | None:
        name = self.entity_snapshot.get("nombre", self.entity_snapshot.get("name"))
        return name if isinstance(name, str) else None

    @property
    def merge_name(self) -> str | None:
        """Name used to find the target record in the working document."""

        return self.original_name or self.snapshot_name


@dataclass(frozen=True, slots=True)
class StagingStats:
    total: int = 0
    new: int = 0
    modify: int = 0
    delete: int = 0
    with_assets: int = 0
