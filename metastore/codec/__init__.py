"""
Codec module for MetaStore.

This module decides how attribute values are tagged and stored:
- TypeTag: closed vocabulary of value types
- classify: ordered type inference
- encode / decode: tag-driven text serialization

Invariants:
    - classify() and the codec are pure functions
    - Every tag produced by classify() has an encode and decode path
"""

from .inference import classify, is_valid_utf8
from .types import TypeTag
from .values import decode, encode

__all__ = [
    "TypeTag",
    "classify",
    "is_valid_utf8",
    "encode",
    "decode",
]
