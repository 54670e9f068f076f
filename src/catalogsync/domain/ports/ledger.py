"""Port for persisting the staged change ledger between sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalogsync.domain.model import StagedChange


@runtime_checkable
class LedgerRepository(Protocol):
    """Load/save the whole ledger of one entity kind as a unit."""

    def load(self) -> list[StagedChange]: ...

    def save(self, changes: Sequence[StagedChange]) -> None: ...

    def clear(self) -> None: ...


__all__ = ["LedgerRepository"]
