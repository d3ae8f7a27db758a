"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the app state in a local JSON file today
2. Use in-memory storage for testing
3. Swap in a real database later without touching business logic

The state interface is intentionally tiny: the whole persisted record
is loaded once at startup and rewritten after every mutation. We're not
building an ORM.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from livetax.models.audit import AuditEvent
from livetax.models.state import PersistedState


class StateStorageInterface(ABC):
    """
    Abstract interface for the persisted application state.

    Calls are synchronous: they happen inside state mutations, which
    run to completion without suspension.
    """

    @abstractmethod
    def load(self) -> Optional[PersistedState]:
        """
        Load the persisted state.

        Returns:
            The stored state, or None if nothing has been saved yet

        Raises:
            CorruptStateError: If the stored record can't be parsed
            StorageError: If reading fails
        """
        pass

    @abstractmethod
    def save(self, state: PersistedState) -> bool:
        """
        Replace the persisted state with this one.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If writing fails
        """
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Remove the persisted state entirely."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    CRITICAL: Audit logs are append-only.
    No update or delete operations are provided.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one document upload flow).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class CorruptStateError(StorageError):
    """Stored state exists but can't be parsed."""
    pass
