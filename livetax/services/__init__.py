"""Services package."""

from livetax.services.extraction import (
    EmptyResponseError,
    ExtractionError,
    GeminiDocumentExtractor,
    MalformedResponseError,
    ResponseBlockedError,
    ResponseTruncatedError,
)
from livetax.services.storage import (
    AuditStorageInterface,
    CorruptStateError,
    InMemoryAuditStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonlAuditStorage,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)

__all__ = [
    # Extraction services
    "EmptyResponseError",
    "ExtractionError",
    "GeminiDocumentExtractor",
    "MalformedResponseError",
    "ResponseBlockedError",
    "ResponseTruncatedError",
    # Storage services
    "AuditStorageInterface",
    "CorruptStateError",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "JsonlAuditStorage",
    "NotFoundError",
    "StateStorageInterface",
    "StorageError",
]
