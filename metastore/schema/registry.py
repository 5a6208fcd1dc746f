"""
Entity Registry for MetaStore.

The EntityRegistry maps entity type names to their AttributeTableDef.
It replaces any lookup of attribute tables by naming convention at call
time: every entity type that carries attributes is registered explicitly
and injected where it is needed.

Invariants:
    - Registry is mutable during startup, frozen before serving
    - Once frozen, no new entity types can be registered
    - Entity type names are unique
    - Attribute tables are unique (two entity types never share one)

How to change safely:
    - Register all entity types before calling freeze()
    - Keep the registry file format additive

Example:
    >>> registry = EntityRegistry()
    >>> registry.register(AttributeTableDef.for_entity("Book"))
    >>> registry.get("book").attribute_table
    'book_meta'
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import yaml

from ..errors import ConfigurationError
from .types import AttributeTableDef, studly_case

logger = logging.getLogger(__name__)


class RegistryFrozenError(ConfigurationError):
    """Raised when attempting to modify a frozen registry."""
    pass


class DuplicateRegistrationError(ConfigurationError):
    """Raised when attempting to register a duplicate entity type."""
    pass


class EntityRegistry:
    """Registry of entity types that carry attributes.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups after freeze are lock-free
        - Freeze is irreversible
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, AttributeTableDef] = {}
        self._by_table: Dict[str, AttributeTableDef] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    def register(self, table_def: AttributeTableDef) -> None:
        """Register an entity type.

        Args:
            table_def: Definition to register

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If the name or attribute table is taken
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register entity type '{table_def.name}': registry is frozen",
                    entity_type=table_def.name,
                )

            if table_def.name in self._by_name:
                raise DuplicateRegistrationError(
                    f"Entity type '{table_def.name}' already registered",
                    entity_type=table_def.name,
                )

            if table_def.attribute_table in self._by_table:
                existing = self._by_table[table_def.attribute_table]
                raise DuplicateRegistrationError(
                    f"Attribute table '{table_def.attribute_table}' already used by '{existing.name}'",
                    entity_type=table_def.name,
                )

            self._by_name[table_def.name] = table_def
            self._by_table[table_def.attribute_table] = table_def
            logger.debug(
                f"Registered entity type: {table_def.name} (table={table_def.attribute_table})"
            )

    def get(self, name: Optional[str]) -> Optional[AttributeTableDef]:
        """Get an entity type by name.

        The name is matched exactly first, then in StudlyCase, so ``book``
        and ``Book`` resolve to the same definition.
        """
        if not name:
            return None
        found = self._by_name.get(name)
        if found is None:
            found = self._by_name.get(studly_case(name))
        return found

    def resolve(self, name: Optional[str]) -> AttributeTableDef:
        """Get an entity type by name or raise.

        Raises:
            ConfigurationError: If no name is given or it is not registered
        """
        if not name:
            raise ConfigurationError("Please specify an entity type")
        found = self.get(name)
        if found is None:
            raise ConfigurationError(f"Entity type {name} not found!", entity_type=name)
        return found

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[AttributeTableDef]:
        yield from self._by_name.values()

    def __len__(self) -> int:
        return len(self._by_name)

    def freeze(self) -> None:
        """Freeze the registry.

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")
            self._frozen = True
            logger.info(f"Entity registry frozen with {len(self._by_name)} entity types")

    def to_dict(self) -> dict:
        """Convert registry to dictionary representation, sorted by name."""
        return {
            "entities": [self._by_name[name].to_dict() for name in sorted(self._by_name)],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_dict(cls, data: dict) -> EntityRegistry:
        """Create registry from dictionary representation.

        Returns:
            New EntityRegistry (not frozen)

        Raises:
            ConfigurationError: If the document is malformed
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Registry document must be a mapping")
        entities = data.get("entities") or []
        if not isinstance(entities, list):
            raise ConfigurationError("'entities' must be a list")

        registry = cls()
        for entry in entities:
            registry.register(AttributeTableDef.from_dict(entry))
        return registry

    @classmethod
    def from_yaml(cls, text: str) -> EntityRegistry:
        """Create registry from YAML (or JSON) text."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid registry document: {e}") from e
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, path: Union[str, Path]) -> EntityRegistry:
        """Load a registry file.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Registry file not found: {path}")
        registry = cls.from_yaml(path.read_text(encoding="utf-8"))
        logger.info(f"Loaded {len(registry)} entity types from {path}")
        return registry
