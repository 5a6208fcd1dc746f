"""
Attribute capability for entities.

Entities gain attributes by holding an AttributeStore scoped to their id,
not by inheriting attribute methods. AttributeStores is the factory that
binds entity type names (via the EntityRegistry) to stores.

Example:
    >>> stores = AttributeStores(db, registry)
    >>> book = stores.entity("Book", 1)
    >>> book.attributes.set("color", "red")
    >>> stores.find("Book", "color", "red")
    [1]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..clock import Clock, SystemClock
from ..schema import AttributeTableDef, EntityRegistry
from ..storage import Database
from .attribute_store import AttributeStore
from .query import AttributeFilter, filter_has_attribute, find_parents


@runtime_checkable
class AttributeCapable(Protocol):
    """Anything exposing an AttributeStore for itself."""

    @property
    def attributes(self) -> AttributeStore: ...


@dataclass
class Entity:
    """Reference to one parent entity row, with its attributes.

    Attributes:
        table_def: Entity type
        id: Parent entity id
        store: Attribute store scoped to this entity
    """

    table_def: AttributeTableDef
    id: int
    store: AttributeStore = field(repr=False)

    @property
    def attributes(self) -> AttributeStore:
        return self.store


class AttributeStores:
    """Factory for attribute stores of registered entity types."""

    def __init__(
        self,
        database: Database,
        registry: EntityRegistry,
        clock: Clock | None = None,
    ) -> None:
        self.database = database
        self.registry = registry
        self.clock = clock or SystemClock()

    def for_entity(self, entity_type: str, parent_id: int) -> AttributeStore:
        """Attribute store of one entity.

        Raises:
            ConfigurationError: If the entity type is not registered
        """
        table_def = self.registry.resolve(entity_type)
        return AttributeStore(self.database, table_def, parent_id, clock=self.clock)

    def entity(self, entity_type: str, parent_id: int) -> Entity:
        store = self.for_entity(entity_type, parent_id)
        return Entity(table_def=store.table_def, id=parent_id, store=store)

    def filter(self, entity_type: str, key: str, value: Any = None) -> AttributeFilter:
        return filter_has_attribute(self.registry.resolve(entity_type), key, value)

    def find(
        self,
        entity_type: str,
        key: str,
        value: Any = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]:
        """Ids of entities owning attribute ``key`` (with ``value`` if given)."""
        table_def = self.registry.resolve(entity_type)
        return find_parents(
            self.database,
            table_def,
            filter_has_attribute(table_def, key, value),
            limit=limit,
            offset=offset,
        )
