"""Per-kind façade over catalog, ledger and synchronization engine."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .catalog import Catalog
from .codec import decode_document, empty_document
from .ledger import StagedChangeLedger
from .normalizer import EntityNormalizer
from .sync import SynchronizationEngine

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime

    from .assets import AssetUpload
    from .model import CatalogEntity, CatalogKind, ChangeKind, StagedChange, StagingStats
    from .ports import BlobStore, LedgerRepository, RemoteDocumentClient
    from .sync import SyncPipeline, SyncResult
    from .sync.pipeline import ProgressCallback

log = getLogger(__name__)


class CatalogWorkspace:
    """Everything an operator does with one catalog kind.

    ``reload`` must run before staging modify/delete changes so their merge
    names can be captured from the current records.
    """

    def __init__(
        self,
        kind: CatalogKind,
        *,
        remote: RemoteDocumentClient,
        blob_store: BlobStore,
        repository: LedgerRepository,
        pipeline: SyncPipeline | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.kind = kind
        self.remote = remote
        self.catalog = Catalog(kind)
        self.normalizer = EntityNormalizer(kind)
        clock_kwargs = {"clock": clock} if clock is not None else {}
        self.ledger = StagedChangeLedger(
            kind,
            repository=repository,
            blob_store=blob_store,
            normalizer=self.normalizer,
            catalog=self.catalog,
            **clock_kwargs,
        )
        self.engine = SynchronizationEngine(
            ledger=self.ledger,
            catalog=self.catalog,
            remote=remote,
            pipeline=pipeline,
            **clock_kwargs,
        )

    async def reload(self) -> list[CatalogEntity]:
        """Fetch the remote document and rebuild the catalog from it."""

        remote_document = await self.remote.fetch_document(self.kind.document_path)
        if remote_document is None:
            log.info("%s does not exist yet; starting empty", self.kind.document_path)
            document: object = empty_document(self.kind)
        else:
            document = decode_document(self.kind, remote_document.text)

        entities = self.normalizer.normalize(
            document, reserved_ids=self.ledger.pending_new_ids()
        )
        self.catalog.replace(entities, version=remote_document.sha if remote_document else None)
        await self.ledger.reconcile_against_remote(entities)
        log.info("Loaded %s %s records", len(entities), self.kind.label)
        return list(entities)

    @property
    def entities(self) -> tuple[CatalogEntity, ...]:
        return self.catalog.entities

    def get(self, entity_id: str) -> CatalogEntity | None:
        return self.catalog.get(entity_id)

    def search(self, term: str) -> list[CatalogEntity]:
        return self.catalog.search(term)

    def filter_by_category(self, category: str | None) -> list[CatalogEntity]:
        return self.catalog.filter_by_category(category)

    def categories(self) -> list[str]:
        return self.catalog.categories()

    async def stage_change(
        self,
        kind: ChangeKind | str,
        entity_data: Mapping[str, object],
        asset: AssetUpload | None = None,
    ) -> StagedChange:
        return await self.ledger.stage_change(kind, entity_data, asset)

    async def discard_change(self, change_id: str) -> StagedChange:
        return await self.ledger.discard_change(change_id)

    async def discard_all_changes(self) -> None:
        await self.ledger.discard_all_changes()

    @property
    def changes(self) -> tuple[StagedChange, ...]:
        return self.ledger.changes

    def stats(self) -> StagingStats:
        return self.ledger.get_staging_stats()

    async def publish(self, progress: ProgressCallback | None = None) -> SyncResult:
        return await self.engine.synchronize(progress)
