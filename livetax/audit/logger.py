"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of how each transaction came to exist
2. Debugging capability when an extraction goes wrong
3. A history the user can look back on

The audit logger:
- Is async so it fits the upload and assistant flows
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from livetax.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from livetax.models.transaction import Transaction
from livetax.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store, when one is configured (append-only JSON lines)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("livetax.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # =========================================================================
    # DOCUMENT PIPELINE
    # =========================================================================

    async def log_file_uploaded(
        self,
        file_id: UUID,
        file_name: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.file_uploaded(
            file_id=file_id,
            file_name=file_name,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_file_rejected(
        self,
        file_name: str,
        errors: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.file_rejected(
            file_name=file_name,
            errors=errors,
            correlation_id=correlation_id,
        ))

    async def log_extraction_completed(
        self,
        file_id: UUID,
        document_type: Optional[str],
        transaction_count: int,
        confidence: float,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(
            file_id=file_id,
            document_type=document_type,
            transaction_count=transaction_count,
            confidence=confidence,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(
        self,
        file_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_failed(
            file_id=file_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_extraction_empty(self, file_id: UUID, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.extraction_empty(
            file_id=file_id,
            correlation_id=correlation_id,
        ))

    async def log_extraction_stale(
        self,
        file_id: UUID,
        attempt: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_stale(
            file_id=file_id,
            attempt=attempt,
            correlation_id=correlation_id,
        ))

    async def log_batch_staged(
        self,
        file_name: Optional[str],
        candidate_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.batch_staged(
            file_name=file_name,
            candidate_count=candidate_count,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # REVIEW DECISIONS
    # =========================================================================

    async def log_pending_edited(
        self,
        index: int,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.pending_edited(
            index=index,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_pending_removed(self, index: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.pending_removed(
            index=index,
            correlation_id=correlation_id,
        ))

    async def log_user_confirmed(
        self,
        committed_count: int,
        remaining_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.user_confirmed(
            committed_count=committed_count,
            remaining_count=remaining_count,
            correlation_id=correlation_id,
        ))

    async def log_partial_commit(
        self,
        committed_count: int,
        remaining_count: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.partial_commit(
            committed_count=committed_count,
            remaining_count=remaining_count,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_user_rejected(
        self,
        discarded_count: int,
        reason: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.user_rejected(
            discarded_count=discarded_count,
            reason=reason,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def log_transaction_added(
        self,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction.id,
            type_=transaction.type.value,
            category=transaction.category.value,
            amount=str(transaction.amount),
            source=transaction.source.value if transaction.source else None,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: UUID,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        subject: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            subject=subject,
            issues=issues,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # ASSISTANT & ERRORS
    # =========================================================================

    async def log_assistant_queried(
        self,
        message_length: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.assistant_queried(
            message_length=message_length,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., document upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
