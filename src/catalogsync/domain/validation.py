"""Validation rules applied to entity data before it may be staged."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Final, cast

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError, Violation

if TYPE_CHECKING:
    from .model import CatalogEntity, CatalogKind

MAX_DESCRIPTION_LENGTH: Final[int] = 500

# Staged data may use Python field names or the document's wire keys.
_FIELD_KEYS: Final[dict[str, tuple[str, ...]]] = {
    "name": ("name", "nombre"),
    "base_price": ("base_price", "precio"),
    "discount_percent": ("discount_percent", "descuento"),
    "image_refs": ("image_refs", "imagenes"),
    "description": ("description", "descripcion"),
}

_MISSING: Final = object()


def _lookup(data: Mapping[str, object], field: str) -> object:
    for key in _FIELD_KEYS[field]:
        if key in data:
            return data[key]
    return _MISSING


def _as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _check_name(data: Mapping[str, object]) -> list[Violation]:
    name = _lookup(data, "name")
    if not isinstance(name, str) or not name.strip():
        return [Violation("name", "required", "name is required")]
    return []


def _check_price(data: Mapping[str, object]) -> list[Violation]:
    raw = _lookup(data, "base_price")
    if raw is _MISSING or raw is None:
        return [Violation("base_price", "required", "base price is required")]
    price = _as_number(raw)
    if price is None:
        return [Violation("base_price", "numeric", f"base price must be a number, got {raw!r}")]
    if price < 0:
        return [Violation("base_price", "non_negative", "base price must not be negative")]
    return []


def _check_discount(data: Mapping[str, object]) -> list[Violation]:
    raw = _lookup(data, "discount_percent")
    if raw is _MISSING or raw is None:
        return []
    discount = _as_number(raw)
    if discount is None:
        return [
            Violation(
                "discount_percent", "numeric", f"discount must be a number, got {raw!r}"
            )
        ]
    if not 0 <= discount <= 100:
        return [
            Violation(
                "discount_percent",
                "discount_range",
                f"discount must be between 0 and 100, got {discount:g}",
            )
        ]
    return []


def _check_image_refs(data: Mapping[str, object]) -> list[Violation]:
    raw = _lookup(data, "image_refs")
    if raw is _MISSING or raw is None:
        return []
    if not isinstance(raw, list):
        return [Violation("image_refs", "list", "image refs must be a list")]
    items = cast(list[object], raw)
    if not all(isinstance(item, str) for item in items):
        return [Violation("image_refs", "list", "image refs must be strings")]
    return []


def _check_description(data: Mapping[str, object]) -> list[Violation]:
    raw = _lookup(data, "description")
    if isinstance(raw, str) and len(raw) > MAX_DESCRIPTION_LENGTH:
        return [
            Violation(
                "description",
                "max_length",
                f"description must not exceed {MAX_DESCRIPTION_LENGTH} characters",
            )
        ]
    return []


def validate_entity_data(data: object) -> list[Violation]:
    """Return every rule ``data`` breaks; an empty list means it may be staged."""

    if not isinstance(data, Mapping):
        return [Violation("entity", "mapping", "entity data must be a mapping")]
    mapping = cast(Mapping[str, object], data)
    violations: list[Violation] = []
    violations.extend(_check_name(mapping))
    violations.extend(_check_price(mapping))
    violations.extend(_check_discount(mapping))
    violations.extend(_check_image_refs(mapping))
    violations.extend(_check_description(mapping))
    return violations


def build_entity(kind: CatalogKind, data: object) -> CatalogEntity:
    """Validate ``data`` and return it as a typed entity of ``kind``."""

    violations = validate_entity_data(data)
    if violations:
        raise ValidationError(violations)
    try:
        return kind.entity_model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            [
                Violation(
                    ".".join(str(part) for part in error["loc"]) or "entity",
                    error["type"],
                    error["msg"],
                )
                for error in exc.errors()
            ]
        ) from exc
