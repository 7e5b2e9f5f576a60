"""Persistence layer - document stores and filter evaluation."""

from restactions.persistence.adapter import DocumentStore
from restactions.persistence.config import StoreConfig, create_store
from restactions.persistence.memory import MemoryStore
from restactions.persistence.sql import SQLStore

__all__ = ["DocumentStore", "MemoryStore", "SQLStore", "StoreConfig", "create_store"]
