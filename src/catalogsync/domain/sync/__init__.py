"""Synchronization of staged changes with the remote catalog document."""

from __future__ import annotations

from .engine import SynchronizationEngine, SyncResult
from .pipeline import ProgressReporter, StepResult, SyncContext, SyncPipeline, SyncStep
from .steps import (
    ApplyChangesStep,
    CommitStep,
    PruneAssetsStep,
    SerializeStep,
    VerifyRoundTripStep,
    WorkingDocument,
    default_steps,
)

__all__ = [
    "ApplyChangesStep",
    "CommitStep",
    "ProgressReporter",
    "PruneAssetsStep",
    "SerializeStep",
    "StepResult",
    "SyncContext",
    "SyncPipeline",
    "SyncResult",
    "SyncStep",
    "SynchronizationEngine",
    "VerifyRoundTripStep",
    "WorkingDocument",
    "default_steps",
]
