"""
Error types for MetaStore.

This module defines all exception types raised by the package:
- MetaStoreError: Base exception
- ConfigurationError: Unknown entity type or invalid definition
- SchemaError: Referenced table does not exist
- DecodeError: Stored value cannot be decoded under its type tag
- ConcurrencyConflictError: Write lock could not be acquired after retries
- StorageError: Storage failure during an attribute operation
- ConfirmationRequiredError: Destructive operation without confirmation

Invariants:
    - All errors inherit from MetaStoreError
    - Errors include context for debugging
    - Storage errors chain the original exception as __cause__
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MetaStoreError(Exception):
    """Base exception for all MetaStore errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "METASTORE_ERROR"
        self.details = details or {}


class ConfigurationError(MetaStoreError):
    """Entity type could not be resolved or is misconfigured.

    Raised when:
    - Entity type is missing or not registered
    - Table or column identifier is not a plain SQL identifier
    - Registry file is malformed
    """

    def __init__(self, message: str, entity_type: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"entity_type": entity_type},
        )
        self.entity_type = entity_type


class SchemaError(MetaStoreError):
    """A table referenced by an entity definition does not exist."""

    def __init__(self, message: str, table: Optional[str] = None) -> None:
        super().__init__(message, code="SCHEMA_ERROR", details={"table": table})
        self.table = table


class DecodeError(MetaStoreError):
    """Stored value is malformed for its declared type tag.

    Attributes:
        tag: Type tag the value was stored under
        raw: The raw stored string
    """

    def __init__(self, message: str, tag: str, raw: Optional[str] = None) -> None:
        super().__init__(message, code="DECODE_ERROR", details={"tag": tag, "raw": raw})
        self.tag = tag
        self.raw = raw


class ConcurrencyConflictError(MetaStoreError):
    """The database stayed locked through every retry."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(
            message,
            code="CONCURRENCY_CONFLICT",
            details={"attempts": attempts},
        )
        self.attempts = attempts


class StorageError(MetaStoreError):
    """Storage layer failure during an attribute operation.

    Wraps the underlying sqlite3 error with the attribute key, type tag
    and table involved.
    """

    def __init__(
        self,
        message: str,
        table: str,
        key: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="STORAGE_ERROR",
            details={"table": table, "key": key, "tag": tag},
        )
        self.table = table
        self.key = key
        self.tag = tag


class ConfirmationRequiredError(MetaStoreError):
    """Irreversible deletion attempted without explicit confirmation."""

    def __init__(self, message: str, table: str) -> None:
        super().__init__(message, code="CONFIRMATION_REQUIRED", details={"table": table})
        self.table = table
