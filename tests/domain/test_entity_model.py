from __future__ import annotations

import pytest

from catalogsync.domain.model import PACKS, PRODUCTS, Pack, Product, get_kind


def test_product_reads_wire_keys_and_derives_final_price() -> None:
    product = Product.model_validate(
        {
            "id": 7,
            "nombre": "  Widget ",
            "categoria": "tools",
            "precio": "20",
            "descuento": 25,
            "imagenes": ["widget.jpg"],
        }
    )

    assert product.id == "7"
    assert product.name == "Widget"
    assert product.base_price == 20.0
    assert product.final_price == 15.0
    assert product.image_refs == ["widget.jpg"]
    assert product.available is True


def test_loading_clamps_out_of_range_numbers() -> None:
    product = Product.model_validate(
        {"nombre": "Odd", "precio": "not a number", "descuento": 150}
    )

    assert product.base_price == 0.0
    assert product.discount_percent == 100.0
    assert product.final_price <= product.base_price


def test_only_explicit_false_disables_availability() -> None:
    assert Product.model_validate({"nombre": "A", "disponibilidad": None}).available is True
    assert Product.model_validate({"nombre": "A", "disponibilidad": 0}).available is True
    assert Product.model_validate({"nombre": "A", "disponibilidad": False}).available is False


def test_to_wire_uses_document_keys() -> None:
    wire = Product(name="Widget", base_price=10, discount_percent=0).to_wire()

    assert wire["nombre"] == "Widget"
    assert wire["precio"] == 10.0
    assert wire["descuento"] == 0.0
    assert wire["precioFinal"] == 10.0
    assert wire["disponibilidad"] is True
    assert "search_text" not in wire
    assert "name" not in wire


def test_wire_output_validates_back_to_the_same_entity() -> None:
    original = Product(name="Lamp", category="home", base_price=12.5, discount_percent=10)

    again = Product.model_validate(original.to_wire())

    assert again == original


def test_pack_maps_legacy_image_and_hora() -> None:
    pack = Pack.model_validate(
        {"nombre": "Starter", "imagen": "starter.png", "hora": "2024-05-01T10:00:00"}
    )

    assert pack.image_refs == ["starter.png"]
    assert pack.created_at == "2024-05-01T10:00:00"
    assert pack.modified_at == "2024-05-01T10:00:00"
    assert pack.to_wire()["imagen"] == "starter.png"


def test_unmodelled_keys_are_written_back() -> None:
    product = Product.model_validate(
        {"nombre": "Widget", "precio": 10, "stock": 7, "tags": ["a"], "precioFinal": 99}
    )

    wire = product.to_wire()

    assert wire["stock"] == 7
    assert wire["tags"] == ["a"]
    assert wire["precioFinal"] == 10.0
    assert "final_price" not in wire


def test_pack_legacy_image_is_not_kept_twice() -> None:
    pack = Pack.model_validate({"nombre": "Starter", "imagen": "old.png", "imagenes": ["new.png"]})

    assert pack.image_refs == ["new.png"]
    assert pack.to_wire()["imagen"] == "new.png"
    assert pack.model_extra == {}


def test_search_text_is_lowercase_name_category_description() -> None:
    product = Product(name="Red Shoe", category="Shoes", description="Comfy")

    assert product.search_text == "red shoe shoes comfy"


def test_get_kind_rejects_unknown_names() -> None:
    assert get_kind("packs") is PACKS
    assert PRODUCTS.asset_path("a.jpg") == "Images/products/a.jpg"
    with pytest.raises(ValueError, match="Unknown catalog kind"):
        get_kind("orders")
