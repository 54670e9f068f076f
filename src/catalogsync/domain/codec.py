"""Canonical wire format of the remote catalog documents."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, cast

from .errors import SchemaError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .model import CatalogEntity, CatalogKind

INDENT = 2


def extract_records(kind: CatalogKind, document: object) -> list[object]:
    """Return the record list wrapped in ``document`` or raise ``SchemaError``."""

    if not isinstance(document, Mapping):
        raise SchemaError(
            f"Invalid {kind.name} document: expected an object, got {type(document).__name__}"
        )
    mapping = cast(Mapping[str, object], document)
    records = mapping.get(kind.collection_field)
    if not isinstance(records, list):
        raise SchemaError(
            f'Invalid {kind.name} document: expected {{"{kind.collection_field}": [...]}}'
        )
    return cast(list[object], records)


def decode_document(kind: CatalogKind, text: str) -> object:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Invalid {kind.name} document: {exc}") from exc


def parse_document(kind: CatalogKind, text: str) -> list[object]:
    return extract_records(kind, decode_document(kind, text))


def dump_document(kind: CatalogKind, entities: Sequence[CatalogEntity]) -> str:
    document = {kind.collection_field: [entity.to_wire() for entity in entities]}
    return json.dumps(document, indent=INDENT, ensure_ascii=False)


def empty_document(kind: CatalogKind) -> dict[str, list[object]]:
    return {kind.collection_field: []}
