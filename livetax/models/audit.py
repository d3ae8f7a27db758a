"""
Audit Models for LiveTax

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of what the user confirmed, edited or rejected
2. Debugging information when an extraction goes wrong
3. Ability to reconstruct how a transaction came to exist

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import datetime as dt
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from livetax.models.transaction import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the document pipeline and every transaction
    mutation has its own event type.
    """
    # Upload & extraction
    FILE_UPLOADED = "file_uploaded"
    FILE_REJECTED = "file_rejected"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    EXTRACTION_EMPTY = "extraction_empty"
    EXTRACTION_STALE = "extraction_stale"

    # Human review of pending candidates
    BATCH_STAGED = "batch_staged"
    PENDING_EDITED = "pending_edited"
    PENDING_REMOVED = "pending_removed"
    USER_CONFIRMED = "user_confirmed"
    USER_REJECTED = "user_rejected"
    PARTIAL_COMMIT = "partial_commit"

    # Permanent transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    VALIDATION_FAILED = "validation_failed"

    # Assistant
    ASSISTANT_QUERIED = "assistant_queried"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: dt.datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'file', 'batch')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one upload)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.file_uploaded(file_id, file_name, size, correlation_id)
        event = AuditEventBuilder.user_confirmed(3, 0, correlation_id)
    """

    @staticmethod
    def file_uploaded(
        file_id: UUID,
        file_name: str,
        file_size: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILE_UPLOADED,
            entity_type="file",
            entity_id=file_id,
            correlation_id=correlation_id,
            description=f"Document uploaded: {file_name}",
            details={
                "file_name": file_name,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def file_rejected(
        file_name: str,
        errors: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="file",
            correlation_id=correlation_id,
            description=f"Document rejected before extraction: {file_name}",
            details={
                "file_name": file_name,
                "errors": errors,
            },
        )

    @staticmethod
    def extraction_completed(
        file_id: UUID,
        document_type: Optional[str],
        transaction_count: int,
        confidence: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="file",
            entity_id=file_id,
            correlation_id=correlation_id,
            description=(
                f"Extracted {transaction_count} transactions "
                f"with {confidence:.0%} confidence"
            ),
            details={
                "document_type": document_type,
                "transaction_count": transaction_count,
                "confidence": confidence,
            },
        )

    @staticmethod
    def extraction_failed(
        file_id: UUID,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="file",
            entity_id=file_id,
            correlation_id=correlation_id,
            description="Document extraction failed",
            error_message=error_message,
        )

    @staticmethod
    def extraction_empty(
        file_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_EMPTY,
            entity_type="file",
            entity_id=file_id,
            correlation_id=correlation_id,
            description="Extraction succeeded but found no transactions",
        )

    @staticmethod
    def extraction_stale(
        file_id: UUID,
        attempt: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_STALE,
            severity=AuditSeverity.WARNING,
            entity_type="file",
            entity_id=file_id,
            correlation_id=correlation_id,
            description=f"Dropped result of superseded extraction attempt {attempt}",
            details={"attempt": attempt},
        )

    @staticmethod
    def batch_staged(
        file_name: Optional[str],
        candidate_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_STAGED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"{candidate_count} candidates staged for review",
            details={
                "file_name": file_name,
                "candidate_count": candidate_count,
            },
        )

    @staticmethod
    def pending_edited(
        index: int,
        fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_EDITED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"User edited pending candidate #{index}",
            details={
                "index": index,
                "fields": fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def pending_removed(
        index: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_REMOVED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"User removed pending candidate #{index}",
            details={"index": index},
            is_user_action=True,
        )

    @staticmethod
    def user_confirmed(
        committed_count: int,
        remaining_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CONFIRMED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"User confirmed {committed_count} extracted transactions",
            details={
                "committed_count": committed_count,
                "remaining_count": remaining_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def partial_commit(
        committed_count: int,
        remaining_count: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_COMMIT,
            severity=AuditSeverity.WARNING,
            entity_type="batch",
            correlation_id=correlation_id,
            description=(
                f"Confirmation stopped after {committed_count} transactions; "
                f"{remaining_count} still pending"
            ),
            details={
                "committed_count": committed_count,
                "remaining_count": remaining_count,
            },
            error_message=error_message,
        )

    @staticmethod
    def user_rejected(
        discarded_count: int,
        reason: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REJECTED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"User rejected {discarded_count} extracted transactions",
            details={
                "discarded_count": discarded_count,
                "reason": reason or "No reason provided",
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        type_: str,
        category: str,
        amount: str,
        source: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {category} - ₹{amount}",
            details={
                "type": type_,
                "category": category,
                "amount": amount,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction updated",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        subject: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=subject,
            correlation_id=correlation_id,
            description=f"{subject.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def assistant_queried(
        message_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_QUERIED,
            entity_type="assistant",
            correlation_id=correlation_id,
            description="User asked the tax assistant a question",
            details={"message_length": message_length},
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
