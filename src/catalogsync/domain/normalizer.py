"""Turn raw remote documents into entity collections."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from .codec import extract_records
from .errors import SchemaError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import CatalogEntity, CatalogKind

log = getLogger(__name__)


def _numeric_id(value: str | None) -> int | None:
    if value is None:
        return None
    stripped = value.strip()
    return int(stripped) if stripped.isdigit() else None


class IdAllocator:
    """Strictly increasing synthetic id counter.

    The counter only ever moves forward: observing smaller ids later never makes it
    hand out an id it has handed out before.
    """

    def __init__(self) -> None:
        self._last = 0

    @property
    def last(self) -> int:
        return self._last

    def observe(self, ids: Iterable[str | None]) -> None:
        for value in ids:
            number = _numeric_id(value)
            if number is not None and number > self._last:
                self._last = number

    def allocate(self) -> str:
        self._last += 1
        return str(self._last)


class EntityNormalizer:
    """Normalizes one kind of catalog document."""

    def __init__(self, kind: CatalogKind, *, allocator: IdAllocator | None = None) -> None:
        self.kind = kind
        self._ids = allocator or IdAllocator()

    def normalize(
        self,
        document: object,
        *,
        reserved_ids: Iterable[str | None] = (),
    ) -> list[CatalogEntity]:
        """Return typed entities for ``document``, assigning ids where missing.

        ``reserved_ids`` are ids already handed to unsynced work (pending "new"
        changes) and must never be reused.
        """

        records = extract_records(self.kind, document)
        entities: list[CatalogEntity] = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise SchemaError(f"{self.kind.label} record #{index} is not an object")
            try:
                entity = self.kind.entity_model.model_validate(record)
            except PydanticValidationError as exc:
                raise SchemaError(f"{self.kind.label} record #{index} is invalid: {exc}") from exc
            if not entity.name:
                raise SchemaError(f"{self.kind.label} record #{index} has no name")
            entities.append(entity)

        self._ids.observe(entity.id for entity in entities)
        self._ids.observe(reserved_ids)
        for entity in entities:
            if entity.id is None:
                entity.id = self._ids.allocate()

        log.debug("Normalized %s %s records", len(entities), self.kind.label)
        return entities

    def allocate_id(self, *, reserved_ids: Iterable[str | None] = ()) -> str:
        self._ids.observe(reserved_ids)
        return self._ids.allocate()
