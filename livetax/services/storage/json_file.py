"""
Local JSON File Storage

State lives in one JSON document; audit events are appended to a
JSON-lines file, one event per line.

CRITICAL: State writes are atomic. The new record is written to a
temporary file in the same directory and moved over the old one with
os.replace, so a crash mid-write never leaves a half-written state file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from livetax.config import get_settings
from livetax.models.audit import AuditEvent
from livetax.models.state import PersistedState
from livetax.services.storage.interface import (
    AuditStorageInterface,
    CorruptStateError,
    StateStorageInterface,
    StorageError,
)


logger = structlog.get_logger("livetax.storage")


class JsonFileStateStorage(StateStorageInterface):
    """Persisted state as a single JSON file on local disk."""

    def __init__(self, path: Optional[str] = None):
        if path is None:
            path = get_settings().storage.state_file
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[PersistedState]:
        if not self._path.exists():
            return None
        try:
            raw = self._path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptStateError(f"State file {self._path} is not UTF-8: {e.reason}")
        except OSError as e:
            raise StorageError(f"Failed to read state file {self._path}: {e}")

        if not raw.strip():
            return None

        try:
            return PersistedState.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptStateError(
                f"State file {self._path} is not valid: {e.error_count()} errors"
            )

    def save(self, state: PersistedState) -> bool:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(state.to_json())
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write state file {self._path}: {e}")

        logger.debug("state_saved", path=str(self._path), transactions=len(state.transactions))
        return True

    def clear(self) -> bool:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove state file {self._path}: {e}")
        return True


class JsonlAuditStorage(AuditStorageInterface):
    """
    Append-only audit log as a JSON-lines file.

    Audit events are append-only.
    """

    def __init__(self, path: Optional[str] = None):
        if path is None:
            path = get_settings().storage.audit_log_file
        self._path = Path(path).expanduser()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(event.model_dump_json() + "\n")
            return True
        except OSError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", path=str(self._path), error=str(e))
            return False

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log {self._path}: {e}")

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate(json.loads(line)))
            except (ValueError, ValidationError):
                logger.warning("audit_line_skipped", path=str(self._path))
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
