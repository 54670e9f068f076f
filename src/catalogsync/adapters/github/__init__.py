"""Public interface for the GitHub adapter."""

from __future__ import annotations

from .client import GitHubContentsClient
from .schema import CommitPayload, ContentFile, WriteResponse

__all__ = [
    "CommitPayload",
    "ContentFile",
    "GitHubContentsClient",
    "WriteResponse",
]
