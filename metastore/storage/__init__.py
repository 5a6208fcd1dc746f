"""
Storage module for MetaStore.

SQLite connections, write transactions and attribute table provisioning.
"""

from .database import Database, is_lock_error

__all__ = ["Database", "is_lock_error"]
