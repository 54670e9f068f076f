"""In-memory entity collection of one catalog kind, replaced wholesale on reload."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import CatalogEntity, CatalogKind

ALL_CATEGORIES = "all"


class Catalog:
    """Entities of one kind plus the remote version they were read from."""

    def __init__(self, kind: CatalogKind, entities: Iterable[CatalogEntity] = ()) -> None:
        self.kind = kind
        self._entities: list[CatalogEntity] = list(entities)
        self.version: str | None = None

    def __len__(self) -> int:
        return len(self._entities)

    @property
    def entities(self) -> tuple[CatalogEntity, ...]:
        return tuple(self._entities)

    def replace(self, entities: Iterable[CatalogEntity], *, version: str | None = None) -> None:
        self._entities = list(entities)
        self.version = version

    def snapshot(self) -> list[CatalogEntity]:
        """Deep copies of the current entities, safe to mutate."""

        return [entity.model_copy(deep=True) for entity in self._entities]

    def get(self, entity_id: str) -> CatalogEntity | None:
        for entity in self._entities:
            if entity.id == entity_id:
                return entity
        return None

    def find_by_name(self, name: str) -> CatalogEntity | None:
        for entity in self._entities:
            if entity.name == name:
                return entity
        return None

    def names(self) -> set[str]:
        return {entity.name for entity in self._entities}

    def search(self, term: str) -> list[CatalogEntity]:
        needle = term.lower()
        return [entity for entity in self._entities if needle in entity.search_text]

    def filter_by_category(self, category: str | None) -> list[CatalogEntity]:
        if not category or category.lower() == ALL_CATEGORIES:
            return list(self._entities)
        wanted = category.lower()
        return [entity for entity in self._entities if entity.category.lower() == wanted]

    def categories(self) -> list[str]:
        return sorted({entity.category for entity in self._entities if entity.category})
