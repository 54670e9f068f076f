from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from catalogsync.adapters.memory import InMemoryBlobStore
from catalogsync.domain.errors import CatalogError, NotFoundError
from catalogsync.domain.model import PRODUCTS, Product
from catalogsync.domain.sync import (
    ProgressReporter,
    StepResult,
    SyncContext,
    SyncPipeline,
    WorkingDocument,
    default_steps,
)
from tests.helpers.catalog import START, FakeRemote


@dataclass
class _RecordingStep:
    name: str
    calls: list[str]
    error: Exception | None = None

    async def run(self, context: SyncContext) -> StepResult:
        self.calls.append(self.name)
        if self.error is not None:
            raise self.error
        return StepResult(self.name, "ok")


def _context() -> SyncContext:
    return SyncContext(
        kind=PRODUCTS,
        changes=(),
        entities=[],
        remote=FakeRemote(),
        blob_store=InMemoryBlobStore(),
        started_at=START,
    )


def test_default_pipeline_order() -> None:
    pipeline = SyncPipeline(steps=default_steps())

    assert pipeline.step_names == ("apply", "serialize", "verify", "commit", "prune-assets")


def test_pipeline_runs_steps_in_order_and_collects_results() -> None:
    calls: list[str] = []
    pipeline = SyncPipeline().with_step(_RecordingStep("one", calls)).extend(
        [_RecordingStep("two", calls)]
    )

    results = asyncio.run(pipeline.run(_context()))

    assert calls == ["one", "two"]
    assert results == [StepResult("one", "ok"), StepResult("two", "ok")]


def test_catalog_errors_are_tagged_with_the_failing_step() -> None:
    calls: list[str] = []
    pipeline = SyncPipeline(
        steps=(
            _RecordingStep("first", calls),
            _RecordingStep("broken", calls, NotFoundError("gone", name="X")),
            _RecordingStep("never", calls),
        )
    )

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(pipeline.run(_context()))

    assert excinfo.value.step == "broken"
    assert calls == ["first", "broken"]


def test_existing_step_tag_is_kept() -> None:
    error = CatalogError("inner", step="upload")
    pipeline = SyncPipeline(steps=(_RecordingStep("outer", [], error),))

    with pytest.raises(CatalogError) as excinfo:
        asyncio.run(pipeline.run(_context()))

    assert excinfo.value.step == "upload"


def test_unexpected_errors_carry_a_note() -> None:
    pipeline = SyncPipeline(steps=(_RecordingStep("boom", [], KeyError("k")),))

    with pytest.raises(KeyError) as excinfo:
        asyncio.run(pipeline.run(_context()))

    assert "synchronization step: boom" in excinfo.value.__notes__


def test_progress_reporter_swallows_callback_failures() -> None:
    seen: list[int | None] = []

    def flaky(percent: int | None, message: str) -> None:
        seen.append(percent)
        raise ValueError("closed")

    report = ProgressReporter(flaky)
    report(10, "a")
    report(None, "b")
    ProgressReporter()(50, "nobody listening")

    assert seen == [10, None]


def test_working_document_follows_renames() -> None:
    document = WorkingDocument([Product(id="1", name="A"), Product(id="2", name="B")])

    index = document.index_of("A")
    assert index == 0
    document.replace(index, Product(id="1", name="A2"))
    document.replace(0, Product(id="1", name="A3"))

    assert document.index_of("A") == 0
    assert document.index_of("A2") == 0
    assert document.index_of("B") == 1
    assert document.index_of("missing") is None
    assert document.contains("A3")
    assert not document.contains("A")


def test_renaming_back_to_an_old_name_does_not_loop() -> None:
    document = WorkingDocument([Product(id="1", name="A")])

    document.replace(0, Product(id="1", name="B"))
    document.replace(0, Product(id="1", name="A"))

    assert document.index_of("A") == 0
    assert document.index_of("B") == 0


def test_new_record_reusing_a_renamed_away_name_is_found_by_id() -> None:
    document = WorkingDocument([Product(id="1", name="A")])
    document.replace(0, Product(id="1", name="A2"))
    document.append(Product(id="5", name="A"))

    assert document.index_of("A", "5") == 1
    assert document.index_of("A", "1") == 0
    assert document.index_of("A") == 0


def test_renamed_away_name_falls_back_to_a_newer_record() -> None:
    document = WorkingDocument([Product(id="1", name="A"), Product(id="2", name="B")])
    document.replace(0, Product(id="1", name="A2"))
    document.remove(0)
    document.append(Product(id="5", name="A"))

    assert document.index_of("A") == 1
    assert document.index_of("B") == 0
