"""Publishes the staged ledger of one catalog kind as a single remote commit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from catalogsync.domain.errors import NotConfiguredError, SyncInProgressError

from .pipeline import ProgressReporter, StepResult, SyncContext, SyncPipeline
from .steps import default_steps

if TYPE_CHECKING:
    from collections.abc import Callable

    from catalogsync.domain.catalog import Catalog
    from catalogsync.domain.ledger import StagedChangeLedger
    from catalogsync.domain.model import StagedChange
    from catalogsync.domain.ports import CommitRef, RemoteDocumentClient

    from .pipeline import ProgressCallback

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class SyncResult:
    success: bool
    message: str
    changes_applied: int = 0
    commit_ref: CommitRef | None = None
    skipped: tuple[str, ...] = ()
    steps: tuple[StepResult, ...] = field(default_factory=tuple)


class SynchronizationEngine:
    """Replays staged changes onto a fresh copy of the catalog and commits it.

    Until the commit succeeds nothing local is touched, so a failed run can
    simply be retried. Only one run may be in flight per engine.
    """

    def __init__(
        self,
        *,
        ledger: StagedChangeLedger,
        catalog: Catalog,
        remote: RemoteDocumentClient,
        pipeline: SyncPipeline | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.kind = ledger.kind
        self.ledger = ledger
        self.catalog = catalog
        self.remote = remote
        self.pipeline = pipeline or SyncPipeline(steps=default_steps())
        self.last_sync_timestamp: datetime | None = None
        self._clock = clock
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def synchronize(self, progress: ProgressCallback | None = None) -> SyncResult:
        if self._busy:
            raise SyncInProgressError(f"A {self.kind.label} synchronization is already running")
        if not self.remote.is_configured():
            raise NotConfiguredError(
                "No remote credentials configured; set CATALOGSYNC_GITHUB_TOKEN to publish"
            )
        changes = self.ledger.changes
        if not changes:
            return SyncResult(success=True, message="No staged changes to synchronize")

        self._busy = True
        try:
            return await self._run(changes, ProgressReporter(progress))
        finally:
            self._busy = False

    async def _run(
        self, changes: tuple[StagedChange, ...], report: ProgressReporter
    ) -> SyncResult:
        report(5, f"Synchronizing {len(changes)} {self.kind.label} changes")
        log.info("Synchronizing %s staged %s changes", len(changes), self.kind.label)
        context = SyncContext(
            kind=self.kind,
            changes=changes,
            entities=self.catalog.snapshot(),
            remote=self.remote,
            blob_store=self.ledger.blob_store,
            started_at=self._clock(),
            progress=report,
            base_sha=self.catalog.version,
        )
        steps = await self.pipeline.run(context)

        await self.ledger.release(changes)
        self.catalog.replace(
            context.entities,
            version=context.commit_ref.content_sha if context.commit_ref else None,
        )
        self.last_sync_timestamp = self._clock()

        message = f"Synchronized {len(changes)} changes ({len(context.entities)} records)"
        if context.skipped:
            message += f"; skipped existing: {', '.join(context.skipped)}"
        report(100, message)
        log.info(message)
        return SyncResult(
            success=True,
            message=message,
            changes_applied=len(changes) - len(context.skipped),
            commit_ref=context.commit_ref,
            skipped=tuple(context.skipped),
            steps=tuple(steps),
        )
