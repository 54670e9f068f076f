from __future__ import annotations

from datetime import UTC, datetime

import pytest

from catalogsync.domain.assets import (
    MAX_ASSET_BYTES,
    AssetUpload,
    is_remote_url,
    sanitize_asset_name,
    validate_asset,
)
from catalogsync.domain.catalog import Catalog
from catalogsync.domain.errors import AssetError
from catalogsync.domain.model import PRODUCTS, Product

NOW = datetime(2025, 1, 1, tzinfo=UTC)
STAMP = int(NOW.timestamp() * 1000)


def test_sanitize_asset_name() -> None:
    assert sanitize_asset_name("Red Shoe (1).JPG", now=NOW) == f"red-shoe-1_{STAMP}.jpg"
    assert sanitize_asset_name("  ñandú.png", now=NOW) == f"and_{STAMP}.png"
    assert sanitize_asset_name("%%%", now=NOW) == f"asset_{STAMP}"


def test_validate_asset_accepts_web_images() -> None:
    for media_type in ("image/jpeg", "image/png", "image/gif", "image/webp"):
        validate_asset(AssetUpload("a", b"x", media_type))


def test_validate_asset_rejects_other_types_and_oversized_files() -> None:
    with pytest.raises(AssetError, match="Unsupported"):
        validate_asset(AssetUpload("a.bmp", b"x", "image/bmp"))
    with pytest.raises(AssetError, match="limit"):
        validate_asset(AssetUpload("a.png", b"x" * (MAX_ASSET_BYTES + 1), "image/png"))


def test_asset_from_path_guesses_media_type() -> None:
    asset = AssetUpload.from_path("/tmp/photos/lamp.png", b"data")

    assert asset.filename == "lamp.png"
    assert asset.media_type == "image/png"
    assert asset.size == 4


def test_remote_urls_are_recognised() -> None:
    assert is_remote_url("https://cdn.example/a.jpg")
    assert not is_remote_url("a.jpg")


@pytest.fixture
def catalog() -> Catalog:
    return Catalog(
        PRODUCTS,
        [
            Product(id="1", name="Red Shoe", category="Shoes", description="leather"),
            Product(id="2", name="Blue Hat", category="hats"),
            Product(id="3", name="Boot", category="shoes", description="Red sole"),
        ],
    )


def test_catalog_queries(catalog: Catalog) -> None:
    assert [entity.id for entity in catalog.search("RED")] == ["1", "3"]
    assert [entity.id for entity in catalog.filter_by_category("SHOES")] == ["1", "3"]
    assert len(catalog.filter_by_category("all")) == 3
    assert len(catalog.filter_by_category(None)) == 3
    assert catalog.categories() == ["Shoes", "hats", "shoes"]
    assert catalog.get("2") is not None
    assert catalog.get("9") is None
    assert catalog.find_by_name("Boot") is catalog.get("3")


def test_snapshot_is_independent(catalog: Catalog) -> None:
    snapshot = catalog.snapshot()
    snapshot[0].name = "Changed"
    snapshot.pop()

    assert len(catalog) == 3
    assert catalog.entities[0].name == "Red Shoe"
