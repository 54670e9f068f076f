"""Domain port definitions for adapters."""

from __future__ import annotations

from .blob_store import BlobStore, StoredBlob
from .ledger import LedgerRepository
from .remote import CommitRef, RemoteDocument, RemoteDocumentClient

__all__ = [
    "BlobStore",
    "CommitRef",
    "LedgerRepository",
    "RemoteDocument",
    "RemoteDocumentClient",
    "StoredBlob",
]
