"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements local JSON files as the backend, but designed to be swappable.
"""

from livetax.services.storage.interface import (
    AuditStorageInterface,
    CorruptStateError,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)
from livetax.services.storage.json_file import (
    JsonFileStateStorage,
    JsonlAuditStorage,
)
from livetax.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStateStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Exceptions
    "CorruptStateError",
    "NotFoundError",
    "StorageError",
    # Local file implementation
    "JsonFileStateStorage",
    "JsonlAuditStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
]
