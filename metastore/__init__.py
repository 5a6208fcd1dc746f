"""
MetaStore - typed entity-attribute-value metadata for relational entities.

This package attaches arbitrary, schema-less key/value attributes to rows
of a parent table, storing each attribute as a row in a sibling attribute
table:

    ┌──────────────┐  set/get   ┌────────────────┐  classify  ┌─────────────┐
    │   Caller     │───────────▶│ AttributeStore │───────────▶│  inference  │
    └──────────────┘            └───────┬────────┘            └─────────────┘
                                        │ encode/decode
                                        ▼
                                ┌────────────────┐            ┌─────────────┐
                                │     codec      │            │  Reconciler │
                                └───────┬────────┘            └──────┬──────┘
                                        ▼                            ▼
                                ┌──────────────────────────────────────────┐
                                │   SQLite (<entity>_meta, parent table)   │
                                └──────────────────────────────────────────┘

Invariants:
    - At most one row per (parent id, key), maintained by the upsert
    - Every stored type tag belongs to TypeTag
    - A stored value is NULL if and only if the original value was None
    - Attribute tables carry no enforced foreign key; the reconciler
      removes rows whose parent has gone away

How to change safely:
    - Never reorder the classification rules in codec.inference
    - Add new type tags at the end of TypeTag and give them a codec entry
    - Keep the attribute table layout additive
"""

from ._version import __version__

__all__ = ["__version__"]
