"""Domain model for catalog entities and staged changes."""

from __future__ import annotations

from .entity import CatalogEntity, Pack, Product
from .kinds import KINDS, PACKS, PRODUCTS, CatalogKind, get_kind
from .staging import ChangeKind, StagedChange, StagingStats, new_change_id

__all__ = [
    "KINDS",
    "PACKS",
    "PRODUCTS",
    "CatalogEntity",
    "CatalogKind",
    "ChangeKind",
    "Pack",
    "Product",
    "StagedChange",
    "StagingStats",
    "get_kind",
    "new_change_id",
]
