"""Port for the remote, version-controlled repository holding the catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class CommitRef:
    """Identifies the remote commit produced by a write.

    ``content_sha`` is the version of the written file, usable as the next ``base_sha``.
    """

    sha: str | None = None
    url: str | None = None
    content_sha: str | None = None


@dataclass(frozen=True, slots=True)
class RemoteDocument:
    text: str
    sha: str | None = None


@runtime_checkable
class RemoteDocumentClient(Protocol):
    """Commit-based access to the catalog document and its asset files."""

    def is_configured(self) -> bool:
        """Return whether write credentials are available."""
        ...

    async def fetch_document(self, path: str) -> RemoteDocument | None:
        """Return the current document text, or ``None`` if it does not exist."""
        ...

    async def upload_asset(self, path: str, content: bytes) -> CommitRef:
        """Create or overwrite a binary file."""
        ...

    async def delete_asset(self, path: str, message: str) -> None:
        """Delete a file; an already-absent file counts as success."""
        ...

    async def commit_document(
        self, path: str, content: str, message: str, *, base_sha: str | None = None
    ) -> CommitRef:
        """Write the whole document in a single commit.

        With ``base_sha`` the write is rejected with a 409 ``RemoteError`` unless the
        document is still at that version.
        """
        ...


__all__ = ["CommitRef", "RemoteDocument", "RemoteDocumentClient"]
