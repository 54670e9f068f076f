"""In-memory blob store and ledger repository for tests and dry runs."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from catalogsync.domain.ports import BlobStore, LedgerRepository, StoredBlob

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalogsync.domain.model import StagedChange


@dataclass(slots=True)
class InMemoryBlobStore:
    entries: dict[str, StoredBlob] = field(default_factory=dict[str, StoredBlob])

    async def put(self, key: str, data: bytes, *, media_type: str = "image/jpeg") -> None:
        self.entries[key] = StoredBlob(
            key=key, data=bytes(data), media_type=media_type, stored_at=datetime.now(UTC)
        )

    async def get(self, key: str) -> bytes | None:
        entry = self.entries.get(key)
        return entry.data if entry is not None else None

    async def get_entry(self, key: str) -> StoredBlob | None:
        return self.entries.get(key)

    async def delete(self, key: str) -> None:
        self.entries.pop(key, None)

    async def clear(self) -> None:
        self.entries.clear()

    async def keys(self) -> list[str]:
        return sorted(self.entries)


@dataclass(slots=True)
class InMemoryLedgerRepository:
    """Keeps copies, so callers mutating their list never change what was saved."""

    saved: list[StagedChange] = field(default_factory=list)
    save_calls: int = 0

    def load(self) -> list[StagedChange]:
        return [_copy(change) for change in self.saved]

    def save(self, changes: Sequence[StagedChange]) -> None:
        self.save_calls += 1
        self.saved = [_copy(change) for change in changes]

    def clear(self) -> None:
        self.saved = []


def _copy(change: StagedChange) -> StagedChange:
    return replace(change, entity_snapshot=deepcopy(change.entity_snapshot))


if TYPE_CHECKING:
    _store_check: BlobStore = InMemoryBlobStore()
    _repository_check: LedgerRepository = InMemoryLedgerRepository()
