"""
Store module for MetaStore - typed attribute reads and writes.

This module handles:
- AttributeStore: get/set/has/remove/sync for one parent entity
- AttributeFilter: EXISTS predicates over parent tables
- Entity / AttributeStores: binding entity types to stores

Invariants:
    - One row per (parent id, key)
    - Reads never write
"""

from .attribute_store import AttributeRow, AttributeStore
from .entity import AttributeCapable, AttributeStores, Entity
from .query import AttributeFilter, filter_has_attribute, find_parents

__all__ = [
    "AttributeRow",
    "AttributeStore",
    "AttributeCapable",
    "AttributeStores",
    "Entity",
    "AttributeFilter",
    "filter_has_attribute",
    "find_parents",
]
