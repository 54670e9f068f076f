from __future__ import annotations

import asyncio
import threading
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003

import pytest
from sqlalchemy import event, insert
from sqlalchemy.engine import Engine  # noqa: TC002

from catalogsync.adapters.sqlalchemy import (
    SqlAlchemyBlobStore,
    SqlAlchemyLedgerRepository,
    StartupError,
    is_started,
    ledger_state_table,
    shutdown,
    startup,
)
from catalogsync.domain.errors import LedgerStorageError
from catalogsync.domain.model import PRODUCTS, ChangeKind, StagedChange
from catalogsync.domain.workspace import CatalogWorkspace
from tests.helpers.catalog import FakeRemote, TickingClock, document_text, png_asset, product


def _change(name: str, kind: ChangeKind = ChangeKind.NEW) -> StagedChange:
    return StagedChange(
        kind=kind,
        timestamp=datetime(2025, 5, 1, 9, 30, tzinfo=UTC),
        target_entity_id="7",
        entity_snapshot={"nombre": name, "precio": 1.5, "imagenes": []},
        original_name=name if kind is not ChangeKind.NEW else None,
    )


def test_blob_store_round_trip_and_overwrite(staging_engine: Engine) -> None:
    store = SqlAlchemyBlobStore("products", engine=staging_engine)

    asyncio.run(store.put("b.png", b"first", media_type="image/png"))
    asyncio.run(store.put("a.jpg", b"jpeg"))
    asyncio.run(store.put("b.png", b"second", media_type="image/png"))

    assert asyncio.run(store.get("b.png")) == b"second"
    assert asyncio.run(store.get("missing.png")) is None
    assert asyncio.run(store.keys()) == ["a.jpg", "b.png"]
    entry = asyncio.run(store.get_entry("a.jpg"))
    assert entry is not None
    assert entry.media_type == "image/jpeg"
    assert entry.stored_at.tzinfo is not None


def test_blob_namespaces_are_isolated(staging_engine: Engine) -> None:
    products = SqlAlchemyBlobStore("products", engine=staging_engine)
    packs = SqlAlchemyBlobStore("packs", engine=staging_engine)
    asyncio.run(products.put("shared.png", b"product"))
    asyncio.run(packs.put("shared.png", b"pack"))

    asyncio.run(products.clear())

    assert asyncio.run(products.keys()) == []
    assert asyncio.run(packs.get("shared.png")) == b"pack"

    asyncio.run(packs.delete("shared.png"))
    assert asyncio.run(packs.keys()) == []


def test_blob_store_queries_run_off_the_event_loop_thread(staging_engine: Engine) -> None:
    query_threads: set[int] = set()

    def record_thread(*_: object) -> None:
        query_threads.add(threading.get_ident())

    event.listen(staging_engine, "before_cursor_execute", record_thread)
    store = SqlAlchemyBlobStore("products", engine=staging_engine)

    async def scenario() -> int:
        await store.put("a.png", b"png", media_type="image/png")
        assert await store.get("a.png") == b"png"
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())

    assert query_threads
    assert loop_thread not in query_threads


def test_in_memory_staging_is_shared_with_worker_threads() -> None:
    shutdown()
    try:
        startup(database_uri="sqlite+pysqlite:///:memory:")
        store = SqlAlchemyBlobStore("products")
        repository = SqlAlchemyLedgerRepository("staged_changes:products")

        asyncio.run(store.put("a.png", b"png"))
        repository.save([_change("Lamp")])

        assert asyncio.run(store.keys()) == ["a.png"]
        assert [change.snapshot_name for change in repository.load()] == ["Lamp"]
    finally:
        shutdown()


def test_ledger_repository_round_trip(staging_engine: Engine) -> None:
    repository = SqlAlchemyLedgerRepository("staged_changes:products", engine=staging_engine)
    changes = [_change("Lamp"), _change("Desk", ChangeKind.DELETE)]

    repository.save(changes)
    loaded = repository.load()

    assert loaded == changes
    assert loaded[1].kind is ChangeKind.DELETE
    assert loaded[1].merge_name == "Desk"


def test_ledger_keys_are_independent_and_empty_save_clears(staging_engine: Engine) -> None:
    products = SqlAlchemyLedgerRepository("staged_changes:products", engine=staging_engine)
    packs = SqlAlchemyLedgerRepository("staged_changes:packs", engine=staging_engine)
    products.save([_change("Lamp")])
    packs.save([_change("Starter")])

    products.save([])

    assert products.load() == []
    assert [change.snapshot_name for change in packs.load()] == ["Starter"]


def test_corrupt_ledger_payload_is_reported(staging_engine: Engine) -> None:
    with staging_engine.begin() as connection:
        connection.execute(
            insert(ledger_state_table).values(
                key="staged_changes:products",
                payload='[{"change_id": "x"}]',
                updated_at=datetime.now(UTC),
            )
        )
    repository = SqlAlchemyLedgerRepository("staged_changes:products", engine=staging_engine)

    with pytest.raises(LedgerStorageError):
        repository.load()


def test_startup_is_lazy_and_guarded(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("CATALOGSYNC_STAGING_URI", f"sqlite+pysqlite:///{tmp_path}/lazy.db")
    shutdown()
    try:
        repository = SqlAlchemyLedgerRepository("staged_changes:products")
        assert not is_started()

        assert repository.load() == []
        assert is_started()
        with pytest.raises(StartupError):
            startup()
    finally:
        shutdown()

    assert not is_started()


def test_workspace_state_survives_restart(started_staging: Engine) -> None:
    remote = FakeRemote()
    remote.documents[PRODUCTS.document_path] = document_text(PRODUCTS, product("Lamp", id="1"))

    def open_workspace() -> CatalogWorkspace:
        return CatalogWorkspace(
            PRODUCTS,
            remote=remote,
            blob_store=SqlAlchemyBlobStore(PRODUCTS.name),
            repository=SqlAlchemyLedgerRepository(PRODUCTS.ledger_key),
            clock=TickingClock(),
        )

    first = open_workspace()
    asyncio.run(first.reload())
    staged = asyncio.run(
        first.stage_change("modify", {"id": "1", "name": "Lamp XL", "base_price": 12}, png_asset())
    )

    second = open_workspace()
    asyncio.run(second.reload())
    result = asyncio.run(second.publish())

    assert second.changes == ()
    assert result.changes_applied == 1
    assert remote.names(PRODUCTS) == ["Lamp XL"]
    assert remote.uploads == [PRODUCTS.asset_path(staged.asset_key or "")]
    assert asyncio.run(SqlAlchemyBlobStore(PRODUCTS.name).keys()) == []
