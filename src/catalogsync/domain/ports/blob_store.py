"""Port for the local store holding image assets that are waiting for upload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class StoredBlob:
    key: str
    data: bytes
    media_type: str
    stored_at: datetime


@runtime_checkable
class BlobStore(Protocol):
    """Async key/bytes store; ``put`` upserts and ``get`` returns ``None`` when absent."""

    async def put(self, key: str, data: bytes, *, media_type: str = "image/jpeg") -> None: ...

    async def get(self, key: str) -> bytes | None: ...

    async def get_entry(self, key: str) -> StoredBlob | None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def keys(self) -> list[str]: ...


__all__ = ["BlobStore", "StoredBlob"]
