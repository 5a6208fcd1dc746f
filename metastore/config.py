"""
Configuration for MetaStore.

All settings come from environment variables prefixed ``METASTORE_``
(for example ``METASTORE_DATABASE_PATH``) and can be overridden by
keyword. Every setting has a default suitable for local development.

How to change safely:
    - Add new settings with defaults that keep existing deployments working
"""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .reconcile.orphans import DEFAULT_BATCH_SIZE
from .schema import EntityRegistry
from .storage import Database

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """MetaStore configuration."""

    # Storage
    database_path: str = Field(default="metastore.db", description="SQLite database file")
    wal_mode: bool = Field(default=True)
    busy_timeout_ms: int = Field(default=5000, ge=0)
    max_retries: int = Field(default=3, ge=0, description="Retries for writes on a locked database")
    retry_delay_ms: int = Field(default=50, ge=0)

    # Entity types
    registry_path: str | None = Field(default=None, description="YAML file listing entity types")

    # Reconciliation
    reconcile_batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", description="text or json")

    # HTTP API
    http_host: str = Field(default="127.0.0.1")
    http_port: int = Field(default=8090)

    model_config = SettingsConfigDict(env_prefix="METASTORE_")

    def open_database(self) -> Database:
        """Database configured from these settings."""
        return Database(
            self.database_path,
            wal_mode=self.wal_mode,
            busy_timeout_ms=self.busy_timeout_ms,
            max_retries=self.max_retries,
            retry_delay_ms=self.retry_delay_ms,
        )

    def load_registry(self) -> EntityRegistry:
        """Entity registry from registry_path (empty if unset).

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        if not self.registry_path:
            logger.warning("No registry file configured; no entity types registered")
            return EntityRegistry()
        return EntityRegistry.load(self.registry_path)

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "MetaStore configuration loaded",
            extra={
                "database_path": self.database_path,
                "registry_path": self.registry_path,
                "wal_mode": self.wal_mode,
                "reconcile_batch_size": self.reconcile_batch_size,
                "log_level": self.log_level,
            },
        )
