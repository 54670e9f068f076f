"""The concrete steps of a synchronization run."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, cast

from catalogsync.domain.assets import is_remote_url
from catalogsync.domain.codec import dump_document, parse_document
from catalogsync.domain.errors import (
    AssetError,
    NotFoundError,
    RemoteError,
    SchemaError,
    SerializationInvariantError,
)
from catalogsync.domain.model import ChangeKind

from .pipeline import StepResult, SyncContext

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalogsync.domain.model import CatalogEntity, CatalogKind, StagedChange

log = getLogger(__name__)

type Serializer = Callable[[CatalogKind, Sequence[CatalogEntity]], str]

APPLY_START_PERCENT = 5
APPLY_END_PERCENT = 50
COMMIT_PERCENT = 75
COMMITTED_PERCENT = 95


class WorkingDocument:
    """The record list being rewritten, addressed by display name.

    Renames applied earlier in the run are remembered so later changes staged
    against the old name still find their record.
    """

    def __init__(self, entities: list[CatalogEntity]) -> None:
        self.entities = entities
        self._renames: dict[str, str] = {}

    def _resolve(self, name: str) -> str:
        seen: set[str] = set()
        while name in self._renames and name not in seen:
            seen.add(name)
            name = self._renames[name]
        return name

    def index_of(self, name: str, entity_id: str | None = None) -> int | None:
        """Position of the record currently known as ``name``.

        An exact match wins unless ``name`` was renamed away earlier in the run.
        When both the renamed record and a newer one answer to the name,
        ``entity_id`` picks between them.
        """

        candidates = (self._resolve(name), name) if name in self._renames else (name,)
        matches = [
            index
            for candidate in candidates
            for index, entity in enumerate(self.entities)
            if entity.name == candidate
        ]
        if entity_id is not None:
            for index in matches:
                if self.entities[index].id == entity_id:
                    return index
        return matches[0] if matches else None

    def contains(self, name: str) -> bool:
        return any(entity.name == name for entity in self.entities)

    def append(self, entity: CatalogEntity) -> None:
        self.entities.append(entity)

    def replace(self, index: int, entity: CatalogEntity) -> CatalogEntity:
        previous = self.entities[index]
        self.entities[index] = entity
        if previous.name != entity.name:
            self._renames[previous.name] = entity.name
            self._renames.pop(entity.name, None)
        return previous

    def remove(self, index: int) -> CatalogEntity:
        return self.entities.pop(index)


@dataclass(slots=True)
class ApplyChangesStep:
    """Upload pending assets and replay the ledger onto the working document."""

    name: str = "apply"

    async def run(self, context: SyncContext) -> StepResult:
        document = WorkingDocument(context.entities)
        total = len(context.changes)
        span = APPLY_END_PERCENT - APPLY_START_PERCENT
        for position, change in enumerate(context.changes, start=1):
            context.progress(
                APPLY_START_PERCENT + span * position // total,
                f"Applying change {position}/{total}: {change.kind} {change.snapshot_name}",
            )
            if change.has_pending_asset:
                await self._upload_asset(context, change)
            self._apply(context, document, change)
        detail = f"{total} changes, {len(context.uploaded)} uploads"
        if context.skipped:
            detail += f", {len(context.skipped)} skipped"
        return StepResult(self.name, detail)

    async def _upload_asset(self, context: SyncContext, change: StagedChange) -> None:
        key = change.asset_key
        data = await context.blob_store.get(key) if key is not None else None
        if key is None or data is None:
            raise AssetError(
                f"Pending image {key!r} for {change.snapshot_name!r} is missing from the blob store"
            )
        context.progress(None, f"Uploading image {key}")
        await context.remote.upload_asset(context.kind.asset_path(key), data)
        context.uploaded.append(key)

    def _apply(self, context: SyncContext, document: WorkingDocument, change: StagedChange) -> None:
        entity = context.kind.entity_model.model_validate(change.entity_snapshot)
        match change.kind:
            case ChangeKind.NEW:
                self._apply_new(context, document, entity)
            case ChangeKind.MODIFY:
                self._apply_modify(context, document, change, entity)
            case ChangeKind.DELETE:
                self._apply_delete(context, document, change)

    @staticmethod
    def _apply_new(
        context: SyncContext, document: WorkingDocument, entity: CatalogEntity
    ) -> None:
        if document.contains(entity.name):
            log.warning(
                "Skipping new %s %r: a record with that name already exists",
                context.kind.label,
                entity.name,
            )
            context.skipped.append(entity.name)
            return
        entity.created_at = entity.created_at or context.now
        entity.modified_at = entity.modified_at or context.now
        document.append(entity)

    @staticmethod
    def _apply_modify(
        context: SyncContext,
        document: WorkingDocument,
        change: StagedChange,
        entity: CatalogEntity,
    ) -> None:
        index = _locate(context, document, change)
        current = document.entities[index]
        entity.created_at = current.created_at or entity.created_at
        entity.modified_at = context.now
        # Unmodelled keys the edit does not mention stay on the record.
        if entity.model_extra is not None and current.model_extra:
            for key, value in current.model_extra.items():
                entity.model_extra.setdefault(key, value)
        document.replace(index, entity)
        if change.has_pending_asset:
            context.superseded.extend(
                ref for ref in current.image_refs if ref not in entity.image_refs
            )

    @staticmethod
    def _apply_delete(
        context: SyncContext, document: WorkingDocument, change: StagedChange
    ) -> None:
        index = _locate(context, document, change)
        removed = document.remove(index)
        context.superseded.extend(removed.image_refs)


def _locate(context: SyncContext, document: WorkingDocument, change: StagedChange) -> int:
    name = change.merge_name or ""
    index = document.index_of(name, change.target_entity_id)
    if index is None:
        raise NotFoundError(
            f"{context.kind.label.capitalize()} {name!r} not found in the remote document",
            name=name,
        )
    return index


@dataclass(slots=True)
class SerializeStep:
    serializer: Serializer = dump_document
    name: str = "serialize"

    async def run(self, context: SyncContext) -> StepResult:
        context.document_text = self.serializer(context.kind, context.entities)
        return StepResult(self.name, f"{len(context.document_text)} characters")


@dataclass(slots=True)
class VerifyRoundTripStep:
    """Re-parse the serialized document and compare it with the working records."""

    name: str = "verify"

    async def run(self, context: SyncContext) -> StepResult:
        if context.document_text is None:
            raise SerializationInvariantError("Nothing was serialized")
        try:
            records = parse_document(context.kind, context.document_text)
        except SchemaError as exc:
            raise SerializationInvariantError(f"Serialized document is unreadable: {exc}") from exc

        if len(records) != len(context.entities):
            raise SerializationInvariantError(
                f"Serialized {len(records)} records, expected {len(context.entities)}"
            )
        names = [_record_name(record) for record in records]
        expected = [entity.name for entity in context.entities]
        if names != expected:
            raise SerializationInvariantError(
                "Serialized record names do not match the working document"
            )
        return StepResult(self.name, f"{len(records)} records")


def _record_name(record: object) -> object:
    if not isinstance(record, Mapping):
        return None
    return cast(Mapping[str, object], record).get("nombre")


@dataclass(slots=True)
class CommitStep:
    name: str = "commit"

    async def run(self, context: SyncContext) -> StepResult:
        if context.document_text is None:
            raise SerializationInvariantError("Nothing was serialized")
        message = (
            f"Update {context.kind.name} - {len(context.entities)} records "
            f"({len(context.changes)} changes)"
        )
        context.progress(COMMIT_PERCENT, f"Committing {context.kind.document_path}")
        context.commit_ref = await context.remote.commit_document(
            context.kind.document_path,
            context.document_text,
            message,
            base_sha=context.base_sha,
        )
        context.progress(COMMITTED_PERCENT, "Document committed")
        sha = context.commit_ref.sha if context.commit_ref else None
        return StepResult(self.name, sha or "")


@dataclass(slots=True)
class PruneAssetsStep:
    """Delete remote image files that no record references any more.

    Runs after the commit, so a failure only leaves an orphaned file behind.
    """

    name: str = "prune-assets"

    async def run(self, context: SyncContext) -> StepResult:
        still_used = {ref for entity in context.entities for ref in entity.image_refs}
        still_used.update(context.uploaded)
        deleted = 0
        for key in dict.fromkeys(context.superseded):
            if is_remote_url(key) or key in still_used:
                continue
            path = context.kind.asset_path(key)
            try:
                await context.remote.delete_asset(path, f"Remove unused image {key}")
            except RemoteError as exc:
                log.warning("Could not delete superseded image %s: %s", path, exc)
                continue
            deleted += 1
        return StepResult(self.name, f"{deleted} deleted")


def default_steps() -> tuple[
    ApplyChangesStep, SerializeStep, VerifyRoundTripStep, CommitStep, PruneAssetsStep
]:
    return (
        ApplyChangesStep(),
        SerializeStep(),
        VerifyRoundTripStep(),
        CommitStep(),
        PruneAssetsStep(),
    )
