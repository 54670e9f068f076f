"""Step-based orchestration for a single synchronization run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from catalogsync.domain.errors import CatalogError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from catalogsync.domain.model import CatalogEntity, CatalogKind, StagedChange
    from catalogsync.domain.ports import BlobStore, CommitRef, RemoteDocumentClient

log = getLogger(__name__)

type ProgressCallback = Callable[[int | None, str], object]


@dataclass(slots=True)
class ProgressReporter:
    """Forward progress to an optional callback; a failing callback never aborts a run."""

    callback: ProgressCallback | None = None

    def __call__(self, percent: int | None, message: str) -> None:
        log.debug("Sync progress %s: %s", percent, message)
        if self.callback is None:
            return
        try:
            self.callback(percent, message)
        except Exception:
            log.exception("Progress callback failed at %s%%: %s", percent, message)


@dataclass(slots=True)
class SyncContext:
    """Mutable state shared by the steps of one run."""

    kind: CatalogKind
    changes: tuple[StagedChange, ...]
    entities: list[CatalogEntity]
    remote: RemoteDocumentClient
    blob_store: BlobStore
    started_at: datetime
    progress: ProgressReporter = field(default_factory=ProgressReporter)
    skipped: list[str] = field(default_factory=list[str])
    uploaded: list[str] = field(default_factory=list[str])
    superseded: list[str] = field(default_factory=list[str])
    base_sha: str | None = None
    document_text: str | None = None
    commit_ref: CommitRef | None = None

    @property
    def now(self) -> str:
        return self.started_at.isoformat()


@dataclass(frozen=True, slots=True)
class StepResult:
    name: str
    detail: str = ""


class SyncStep(Protocol):
    """Contract implemented by each synchronization step."""

    name: str

    async def run(self, context: SyncContext) -> StepResult: ...


@dataclass(slots=True)
class SyncPipeline:
    """Run steps in order, tagging any failure with the step it came from."""

    steps: Sequence[SyncStep] = field(default_factory=tuple)

    def with_step(self, step: SyncStep) -> SyncPipeline:
        return SyncPipeline(steps=(*self.steps, step))

    def extend(self, steps: Iterable[SyncStep]) -> SyncPipeline:
        return SyncPipeline(steps=(*self.steps, *tuple(steps)))

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.steps)

    async def run(self, context: SyncContext) -> list[StepResult]:
        results: list[StepResult] = []
        for step in self.steps:
            log.info("Sync step %s started", step.name)
            try:
                result = await step.run(context)
            except CatalogError as exc:
                if exc.step is None:
                    exc.step = step.name
                log.error("Sync step %s failed: %s", step.name, exc)
                raise
            except Exception as exc:
                exc.add_note(f"synchronization step: {step.name}")
                log.error("Sync step %s failed: %s", step.name, exc)
                raise
            log.info("Sync step %s finished %s", step.name, result.detail)
            results.append(result)
        return results
