"""Catalog entities as they appear in the remote JSON documents.

Field aliases are the wire keys of the published documents, so ``model_dump(by_alias=True)``
yields exactly the records other clients read. Loading is lenient: the documents are
hand-edited from time to time and a single odd value must not make the whole catalog
unreadable.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


# Computed on output; a stored value would shadow the fresh one.
DERIVED_KEYS = ("final_price", "precioFinal")


def _coerce_id(value: object) -> object:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _coerce_number(value: object) -> object:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return value


def _coerce_text(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int | float):
        return str(value)
    return value


def _not_explicitly_false(value: object) -> bool:
    return value is not False


def _coerce_image_refs(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        items = cast(list[object], value)
        return [str(item) for item in items if item]
    return value


def _coerce_timestamp(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CatalogEntity(BaseModel):
    """Fields shared by every catalog record."""

    # Keys this model does not know are kept and written back unchanged.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str = Field(alias="nombre")
    category: str = Field(default="", alias="categoria")
    description: str = Field(default="", alias="descripcion")
    base_price: float = Field(default=0.0, alias="precio")
    discount_percent: float = Field(default=0.0, alias="descuento")
    is_new: bool = Field(default=False, alias="nuevo")
    on_sale: bool = Field(default=False, alias="oferta")
    image_refs: list[str] = Field(default_factory=list[str], alias="imagenes")
    created_at: str | None = None
    modified_at: str | None = None

    _normalize_id = field_validator("id", mode="before")(_coerce_id)
    _normalize_text = field_validator("name", "category", "description", mode="before")(
        _coerce_text
    )
    _normalize_numbers = field_validator("base_price", "discount_percent", mode="before")(
        _coerce_number
    )
    _normalize_images = field_validator("image_refs", mode="before")(_coerce_image_refs)
    _normalize_timestamps = field_validator("created_at", "modified_at", mode="before")(
        _coerce_timestamp
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_derived_fields(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        for key in DERIVED_KEYS:
            data.pop(key, None)
        return data

    @field_validator("base_price")
    @classmethod
    def _non_negative_price(cls, value: float) -> float:
        return max(value, 0.0)

    @field_validator("discount_percent")
    @classmethod
    def _clamp_discount(cls, value: float) -> float:
        return min(max(value, 0.0), 100.0)

    @computed_field(alias="precioFinal")
    @property
    def final_price(self) -> float:
        return round(self.base_price * (1 - self.discount_percent / 100), 2)

    @property
    def search_text(self) -> str:
        return f"{self.name} {self.category} {self.description}".lower()

    def to_wire(self) -> dict[str, Any]:
        """Return the record exactly as it is written to the remote document.

        Unmodelled keys read from the document are included.
        """

        return self.model_dump(mode="json", by_alias=True)


class Product(CatalogEntity):
    available: bool = Field(default=True, alias="disponibilidad")
    best_seller: bool = Field(default=False, alias="mas_vendido")

    _normalize_available = field_validator("available", mode="before")(_not_explicitly_false)


class Pack(CatalogEntity):
    available: bool = Field(default=True, alias="disponible")
    top: bool = False
    features: list[str] = Field(default_factory=list[str], alias="caracteristicas")

    _normalize_available = field_validator("available", mode="before")(_not_explicitly_false)
    _normalize_features = field_validator("features", mode="before")(_coerce_image_refs)

    @model_validator(mode="before")
    @classmethod
    def _apply_legacy_fields(cls, value: object) -> object:
        # Older pack records carry a single ``imagen`` and a ``hora`` creation stamp.
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        legacy_image = data.pop("imagen", None)
        data.pop("primary_image", None)
        if legacy_image and not (data.get("imagenes") or data.get("image_refs")):
            data["imagenes"] = [legacy_image]
        if not data.get("created_at") and data.get("hora"):
            data["created_at"] = data["hora"]
        if not data.get("modified_at") and data.get("created_at"):
            data["modified_at"] = data["created_at"]
        return data

    @computed_field(alias="imagen")
    @property
    def primary_image(self) -> str | None:
        return self.image_refs[0] if self.image_refs else None
