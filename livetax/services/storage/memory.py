"""
In-Memory Storage

Used by tests and by sessions that shouldn't touch the disk.
Round-trips through JSON so that what comes back matches exactly what
the file backend would return.
"""

from typing import Optional
from uuid import UUID

from livetax.models.audit import AuditEvent
from livetax.models.state import PersistedState
from livetax.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
)


class InMemoryStateStorage(StateStorageInterface):

    def __init__(self, initial: Optional[PersistedState] = None):
        self._raw: Optional[str] = initial.to_json() if initial else None
        self.save_count = 0

    def load(self) -> Optional[PersistedState]:
        if self._raw is None:
            return None
        return PersistedState.model_validate_json(self._raw)

    def save(self, state: PersistedState) -> bool:
        self._raw = state.to_json()
        self.save_count += 1
        return True

    def clear(self) -> bool:
        self._raw = None
        return True


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
