"""SQLAlchemy-backed store for image bytes awaiting upload."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select

from catalogsync.domain.ports import BlobStore, StoredBlob

from .mappings import staged_blob_table
from .state import SessionSource

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class SqlAlchemyBlobStore:
    """Blob store scoped to one ``namespace`` so kinds never clear each other's images.

    Database work runs in a worker thread; the event loop only awaits it.
    """

    def __init__(self, namespace: str, *, engine: Engine | None = None) -> None:
        self.namespace = namespace
        self._sessions = SessionSource(engine)

    async def put(self, key: str, data: bytes, *, media_type: str = "image/jpeg") -> None:
        await asyncio.to_thread(self._put, key, data, media_type)
        log.debug("Stored blob %s/%s (%s bytes)", self.namespace, key, len(data))

    async def get(self, key: str) -> bytes | None:
        entry = await self.get_entry(key)
        return entry.data if entry is not None else None

    async def get_entry(self, key: str) -> StoredBlob | None:
        return await asyncio.to_thread(self._get_entry, key)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)
        log.debug("Cleared blob namespace %s", self.namespace)

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys)

    def _put(self, key: str, data: bytes, media_type: str) -> None:
        values = {
            "namespace": self.namespace,
            "key": key,
            "data": data,
            "media_type": media_type,
            "stored_at": datetime.now(UTC),
        }
        with self._sessions() as session, session.begin():
            session.execute(
                delete(staged_blob_table).where(
                    staged_blob_table.c.namespace == self.namespace,
                    staged_blob_table.c.key == key,
                )
            )
            session.execute(insert(staged_blob_table).values(**values))

    def _get_entry(self, key: str) -> StoredBlob | None:
        statement = select(
            staged_blob_table.c.key,
            staged_blob_table.c.data,
            staged_blob_table.c.media_type,
            staged_blob_table.c.stored_at,
        ).where(
            staged_blob_table.c.namespace == self.namespace,
            staged_blob_table.c.key == key,
        )
        with self._sessions() as session:
            row = session.execute(statement).one_or_none()
        if row is None:
            return None
        return StoredBlob(
            key=row.key, data=row.data, media_type=row.media_type, stored_at=row.stored_at
        )

    def _delete(self, key: str) -> None:
        statement = delete(staged_blob_table).where(
            staged_blob_table.c.namespace == self.namespace,
            staged_blob_table.c.key == key,
        )
        with self._sessions() as session, session.begin():
            session.execute(statement)

    def _clear(self) -> None:
        statement = delete(staged_blob_table).where(
            staged_blob_table.c.namespace == self.namespace
        )
        with self._sessions() as session, session.begin():
            session.execute(statement)

    def _keys(self) -> list[str]:
        statement = (
            select(staged_blob_table.c.key)
            .where(staged_blob_table.c.namespace == self.namespace)
            .order_by(staged_blob_table.c.key)
        )
        with self._sessions() as session:
            return list(session.scalars(statement))


if TYPE_CHECKING:
    _store_check: BlobStore = SqlAlchemyBlobStore("products")
