"""Durable log of pending create/modify/delete edits for one catalog kind."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from .assets import sanitize_asset_name, validate_asset
from .errors import NotFoundError, ValidationError, Violation
from .model import ChangeKind, StagedChange, StagingStats
from .validation import build_entity

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from .assets import AssetUpload
    from .catalog import Catalog
    from .model import CatalogEntity, CatalogKind
    from .normalizer import EntityNormalizer
    from .ports import BlobStore, LedgerRepository

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_change_kind(value: ChangeKind | str) -> ChangeKind:
    try:
        return ChangeKind(value)
    except ValueError:
        allowed = ", ".join(kind.value for kind in ChangeKind)
        raise ValidationError(
            [Violation("kind", "change_kind", f"unknown change kind {value!r} ({allowed})")]
        ) from None


class StagedChangeLedger:
    """Owns the staged changes of one kind and the blobs they reference.

    Every mutating method rewrites the whole ledger through the repository, so the
    staged work survives restarts. Raw asset bytes live only in the blob store.
    """

    def __init__(
        self,
        kind: CatalogKind,
        *,
        repository: LedgerRepository,
        blob_store: BlobStore,
        normalizer: EntityNormalizer,
        catalog: Catalog,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.kind = kind
        self.blob_store = blob_store
        self._repository = repository
        self._normalizer = normalizer
        self._catalog = catalog
        self._clock = clock
        self._changes: list[StagedChange] = list(repository.load())
        if self._changes:
            log.info("Loaded %s staged %s changes", len(self._changes), kind.label)

    def __len__(self) -> int:
        return len(self._changes)

    @property
    def changes(self) -> tuple[StagedChange, ...]:
        return tuple(self._changes)

    def get(self, change_id: str) -> StagedChange:
        for change in self._changes:
            if change.change_id == change_id:
                return change
        raise NotFoundError(f"No staged change with id {change_id}")

    def pending_new_ids(self) -> list[str | None]:
        return [
            change.target_entity_id for change in self._changes if change.kind is ChangeKind.NEW
        ]

    async def stage_change(
        self,
        kind: ChangeKind | str,
        entity_data: Mapping[str, object],
        asset: AssetUpload | None = None,
    ) -> StagedChange:
        """Validate and record one edit; nothing is staged if any check fails."""

        change_kind = _parse_change_kind(kind)
        entity = build_entity(self.kind, entity_data)
        if asset is not None:
            validate_asset(asset)

        if change_kind is ChangeKind.NEW and entity.id is None:
            entity.id = self._normalizer.allocate_id(reserved_ids=self.pending_new_ids())

        original_name: str | None = None
        if change_kind is not ChangeKind.NEW and entity.id is not None:
            original_name = self._current_name(entity.id)

        asset_key: str | None = None
        if asset is not None:
            asset_key = sanitize_asset_name(asset.filename, now=self._clock())
            entity.image_refs = [asset_key]

        change = StagedChange(
            kind=change_kind,
            timestamp=self._clock(),
            target_entity_id=entity.id,
            entity_snapshot=entity.to_wire(),
            original_name=original_name,
            has_pending_asset=asset is not None,
            asset_key=asset_key,
        )

        if asset is not None and asset_key is not None:
            await self.blob_store.put(asset_key, asset.content, media_type=asset.media_type)

        self._changes.append(change)
        try:
            self._persist()
        except Exception:
            self._changes.pop()
            if asset_key is not None:
                await self.blob_store.delete(asset_key)
            raise

        log.info(
            "Staged %s %s %r (%s)",
            change.kind,
            self.kind.label,
            entity.name,
            change.change_id,
        )
        return change

    async def discard_change(self, change_id: str) -> StagedChange:
        change = self.get(change_id)
        if change.asset_key is not None:
            await self.blob_store.delete(change.asset_key)
        self._changes.remove(change)
        self._persist()
        log.info("Discarded staged change %s", change_id)
        return change

    async def discard_all_changes(self) -> None:
        await self.blob_store.clear()
        self._changes = []
        self._repository.clear()
        log.info("Discarded all staged %s changes", self.kind.label)

    def get_staging_stats(self) -> StagingStats:
        counts = Counter(change.kind for change in self._changes)
        return StagingStats(
            total=len(self._changes),
            new=counts[ChangeKind.NEW],
            modify=counts[ChangeKind.MODIFY],
            delete=counts[ChangeKind.DELETE],
            with_assets=sum(1 for change in self._changes if change.has_pending_asset),
        )

    async def reconcile_against_remote(
        self, fresh_entities: Iterable[CatalogEntity]
    ) -> list[StagedChange]:
        """Drop staged deletes whose target is already gone upstream.

        New and modify entries are never pruned here: their targets are expected
        to be missing or different upstream until the next publish. A delete aimed
        at a record that an earlier entry creates or renames is kept for the same
        reason.
        """

        present = {entity.name for entity in fresh_entities}
        # Names earlier entries create or rename to before a later delete replays.
        staged_names: set[str | None] = set()
        kept: list[StagedChange] = []
        pruned: list[StagedChange] = []
        for change in self._changes:
            if change.kind is ChangeKind.DELETE:
                if change.merge_name not in present and change.merge_name not in staged_names:
                    pruned.append(change)
                    continue
            else:
                staged_names.update((change.snapshot_name, change.merge_name))
            kept.append(change)

        if not pruned:
            return []

        for change in pruned:
            if change.asset_key is not None:
                await self.blob_store.delete(change.asset_key)
        self._changes = kept
        self._persist()
        log.info(
            "Pruned %s staged deletes already applied upstream: %s",
            len(pruned),
            ", ".join(str(change.merge_name) for change in pruned),
        )
        return pruned

    async def release(self, synchronized: Iterable[StagedChange]) -> None:
        """Forget changes that were published, freeing their blobs.

        Changes staged while the publish was running are kept.
        """

        done = {change.change_id for change in synchronized}
        remaining = [change for change in self._changes if change.change_id not in done]
        if not remaining:
            await self.discard_all_changes()
            return
        for change in self._changes:
            if change.change_id in done and change.asset_key is not None:
                await self.blob_store.delete(change.asset_key)
        self._changes = remaining
        self._persist()

    def _current_name(self, entity_id: str) -> str | None:
        existing = self._catalog.get(entity_id)
        if existing is not None:
            return existing.name
        # Not published yet: the record only exists through earlier staged changes.
        for change in reversed(self._changes):
            if change.target_entity_id == entity_id:
                return change.snapshot_name
        return None

    def _persist(self) -> None:
        self._repository.save(self._changes)
