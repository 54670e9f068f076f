"""Application entry points wiring the catalog workspace to its adapters."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from catalogsync.adapters.github import GitHubContentsClient
from catalogsync.adapters.sqlalchemy import SqlAlchemyBlobStore, SqlAlchemyLedgerRepository
from catalogsync.domain.assets import AssetUpload
from catalogsync.domain.model import get_kind
from catalogsync.domain.workspace import CatalogWorkspace

if TYPE_CHECKING:
    from collections.abc import Mapping

    from catalogsync.domain.model import CatalogEntity, StagedChange, StagingStats
    from catalogsync.domain.ports import RemoteDocumentClient
    from catalogsync.domain.sync import SyncResult
    from catalogsync.domain.sync.pipeline import ProgressCallback

WorkspaceFactory = Callable[[str], CatalogWorkspace]

log = getLogger(__name__)


def build_workspace(
    kind_name: str,
    *,
    remote: RemoteDocumentClient | None = None,
) -> CatalogWorkspace:
    """Workspace for ``kind_name`` on GitHub with SQLite-backed staging."""

    kind = get_kind(kind_name)
    return CatalogWorkspace(
        kind,
        remote=remote or GitHubContentsClient(),
        blob_store=SqlAlchemyBlobStore(kind.name),
        repository=SqlAlchemyLedgerRepository(kind.ledger_key),
    )


@dataclass(frozen=True, slots=True)
class StatusReport:
    stats: StagingStats
    changes: tuple[StagedChange, ...]
    configured: bool


def get_status(
    kind_name: str, *, workspace_factory: WorkspaceFactory = build_workspace
) -> StatusReport:
    workspace = workspace_factory(kind_name)
    return StatusReport(
        stats=workspace.stats(),
        changes=workspace.changes,
        configured=workspace.remote.is_configured(),
    )


def list_entities(
    kind_name: str,
    *,
    search: str | None = None,
    category: str | None = None,
    workspace_factory: WorkspaceFactory = build_workspace,
) -> list[CatalogEntity]:
    workspace = workspace_factory(kind_name)
    asyncio.run(workspace.reload())
    entities = workspace.filter_by_category(category)
    if search:
        matches = {id(entity) for entity in workspace.search(search)}
        entities = [entity for entity in entities if id(entity) in matches]
    return entities


def stage_entity(
    kind_name: str,
    change_kind: str,
    entity_data: Mapping[str, object],
    *,
    image_path: Path | str | None = None,
    workspace_factory: WorkspaceFactory = build_workspace,
) -> StagedChange:
    """Stage one edit; the remote document is read first to capture merge names."""

    workspace = workspace_factory(kind_name)
    asset = None
    if image_path is not None:
        path = Path(image_path)
        asset = AssetUpload.from_path(path, path.read_bytes())

    async def run() -> StagedChange:
        await workspace.reload()
        return await workspace.stage_change(change_kind, entity_data, asset)

    change = asyncio.run(run())
    log.info("Staged %s as %s", change.kind, change.change_id)
    return change


def discard_change(
    kind_name: str, change_id: str, *, workspace_factory: WorkspaceFactory = build_workspace
) -> StagedChange:
    workspace = workspace_factory(kind_name)
    return asyncio.run(workspace.discard_change(change_id))


def discard_all_changes(
    kind_name: str, *, workspace_factory: WorkspaceFactory = build_workspace
) -> None:
    workspace = workspace_factory(kind_name)
    asyncio.run(workspace.discard_all_changes())


def publish_changes(
    kind_name: str,
    *,
    progress: ProgressCallback | None = None,
    workspace_factory: WorkspaceFactory = build_workspace,
) -> SyncResult:
    """Reload the remote document and publish every staged change onto it."""

    workspace = workspace_factory(kind_name)

    async def run() -> SyncResult:
        await workspace.reload()
        return await workspace.publish(progress)

    result = asyncio.run(run())
    log.info(
        "Publish finished: applied=%s, skipped=%s, commit=%s",
        result.changes_applied,
        len(result.skipped),
        result.commit_ref.sha if result.commit_ref else None,
    )
    return result
