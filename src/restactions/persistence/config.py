"""Store configuration and factory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from restactions.persistence.adapter import DocumentStore

MEMORY_URL = "memory://"


@dataclass
class StoreConfig:
    """Document store configuration.

    Supports memory://, sqlite:/// and postgresql:// URL schemes.
    """

    url: str

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Create config from environment variables.

        Resolution order:
        1. RESTACTIONS_DATABASE_URL env var
        2. DATABASE_URL env var (standard)
        3. RESTACTIONS_DB_PATH env var (converted to sqlite:/// URL)
        4. Default: memory://
        """
        for name in ("RESTACTIONS_DATABASE_URL", "DATABASE_URL"):
            url = os.environ.get(name)
            if url:
                return cls(url=url)

        db_path = os.environ.get("RESTACTIONS_DB_PATH")
        if db_path:
            return cls(url=f"sqlite:///{db_path}")

        return cls(url=MEMORY_URL)

    @property
    def is_memory(self) -> bool:
        return self.url.startswith("memory:")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        return self.url.startswith("postgresql")

    @property
    def is_sql(self) -> bool:
        return self.is_sqlite or self.is_postgresql

    @property
    def sqlalchemy_url(self) -> str:
        """URL suitable for SQLAlchemy engine creation.

        Ensures postgresql:// URLs use the psycopg (v3) driver.
        """
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url


def create_store(config: StoreConfig) -> DocumentStore:
    """Create a document store based on the URL scheme.

    Args:
        config: Store configuration with URL.

    Returns:
        A DocumentStore instance (not yet connected).

    Raises:
        ValueError: For unsupported URL schemes.
    """
    if config.is_memory:
        from restactions.persistence.memory import MemoryStore

        return MemoryStore()

    if config.is_sql:
        from restactions.persistence.sql import SQLStore

        # Ensure parent directory exists for SQLite databases
        if config.is_sqlite:
            sqlite_path = config.url.replace("sqlite:///", "", 1)
            if sqlite_path and sqlite_path != ":memory:" and sqlite_path != config.url:
                Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)

        return SQLStore(config.sqlalchemy_url)

    raise ValueError(f"Unsupported database URL scheme: {config.url}")
