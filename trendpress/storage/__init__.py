"""
Persistent store backends.

The pipeline only talks to the Store interface; `create_store` picks the
backend named in StorageConfig.
"""

from ..config import StorageConfig
from ..errors import ConfigurationError
from .base import Store
from .filesystem import FileStore
from .memory import MemoryStore


def create_store(cfg: StorageConfig) -> Store:
    """Build a store from runtime config."""
    backend = cfg.backend.lower().strip()
    if backend == "file":
        return FileStore(cfg.path)
    if backend == "memory":
        return MemoryStore()
    raise ConfigurationError(f"Unsupported storage backend: {cfg.backend}. Supported: file, memory")


__all__ = ["Store", "FileStore", "MemoryStore", "create_store"]
