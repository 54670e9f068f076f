"""Entity kinds and where their documents and assets live in the remote repository."""

from __future__ import annotations

from dataclasses import dataclass

from .entity import CatalogEntity, Pack, Product


@dataclass(frozen=True, slots=True)
class CatalogKind:
    """Everything that differs between the product and pack catalogs."""

    name: str
    label: str
    collection_field: str
    document_path: str
    image_prefix: str
    entity_model: type[CatalogEntity]

    @property
    def ledger_key(self) -> str:
        return f"staged_changes:{self.name}"

    def asset_path(self, key: str) -> str:
        return f"{self.image_prefix}{key}"


PRODUCTS = CatalogKind(
    name="products",
    label="product",
    collection_field="products",
    document_path="Json/products.json",
    image_prefix="Images/products/",
    entity_model=Product,
)

PACKS = CatalogKind(
    name="packs",
    label="pack",
    collection_field="packs",
    document_path="Json/packs.json",
    image_prefix="Images/Packs/",
    entity_model=Pack,
)

KINDS: dict[str, CatalogKind] = {kind.name: kind for kind in (PRODUCTS, PACKS)}


def get_kind(name: str) -> CatalogKind:
    try:
        return KINDS[name]
    except KeyError:
        known = ", ".join(sorted(KINDS))
        raise ValueError(f"Unknown catalog kind {name!r} (expected one of: {known})") from None
