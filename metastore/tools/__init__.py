"""
CLI tools for MetaStore administration.

This module provides command-line tools for:
- clean_orphans: Delete attribute rows whose parent no longer exists

Invariants:
    - Tools work offline (no running server required)
    - Destructive operations ask for confirmation
"""

from .clean_orphans import CleanOrphansCLI

__all__ = ["CleanOrphansCLI"]
