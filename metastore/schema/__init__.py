"""
Schema module for MetaStore.

This module describes which entity types carry attributes and where:
- AttributeTableDef: tables and columns backing one entity type
- EntityRegistry: explicit name -> definition mapping

Invariants:
    - Every store and reconciler resolves tables through a definition,
      never by string concatenation at call time
"""

from .registry import DuplicateRegistrationError, EntityRegistry, RegistryFrozenError
from .types import AttributeTableDef, pluralize, snake_case, studly_case

__all__ = [
    "AttributeTableDef",
    "EntityRegistry",
    "RegistryFrozenError",
    "DuplicateRegistrationError",
    "snake_case",
    "studly_case",
    "pluralize",
]
