"""
Main Orchestrator for LiveTax

This module ties together all the components and defines the
end-to-end flows for:
1. Document Upload (file → validate → extract → normalize → stage → review → confirm)
2. Manual transaction entry (form → validate → record)
3. Assistant (question → financial snapshot → answer)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No extracted data becomes permanent without human confirmation
- The assistant only ever sees the computed snapshot, never raw storage
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import datetime as dt
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from livetax.agents import FALLBACK_REPLY, TaxAssistantAgent, build_financial_snapshot
from livetax.audit import AuditLogger, create_correlation_id
from livetax.extraction import normalize_candidates
from livetax.models.chat import ChatRole
from livetax.models.extraction import (
    DocumentType,
    ExtractedDocument,
    ExtractionResult,
    ExtractionUserContext,
    FileUploadStatus,
    UploadedFile,
)
from livetax.models.insight import NotificationType
from livetax.models.transaction import Transaction
from livetax.models.validation import FileValidationResult, ValidationResult
from livetax.services.extraction import GeminiDocumentExtractor
from livetax.services.storage import (
    CorruptStateError,
    JsonFileStateStorage,
    JsonlAuditStorage,
)
from livetax.state import AppState
from livetax.validation import (
    FileValidator,
    TransactionValidator,
    issues_from_validation_error,
)
from livetax.workflow import ConfirmationResult


logger = structlog.get_logger("livetax.orchestrator")

SUPERSEDED_ERROR = "Superseded by a newer upload"


class UploadOutcome(BaseModel):
    """
    What happened to one uploaded document.

    staged_count is the number of candidates put up for review.
    stale is True when a newer upload started before this one finished
    and the result was dropped.
    """

    validation: FileValidationResult
    uploaded_file: Optional[UploadedFile] = None
    extraction: Optional[ExtractionResult] = None
    staged_count: int = 0
    stale: bool = False

    @property
    def needs_review(self) -> bool:
        return self.staged_count > 0


def extraction_context(state: AppState) -> ExtractionUserContext:
    """The slice of the profile sent along with a document."""
    profile = state.user_profile
    if profile is None:
        return ExtractionUserContext(
            assessment_year=state.settings.default_assessment_year,
            preferred_regime=state.tax_settings.preferred_regime,
        )
    return ExtractionUserContext(
        user_type=profile.user_type.value,
        assessment_year=profile.tax_info.assessment_year,
        preferred_regime=profile.tax_info.preferred_regime,
    )


class DocumentUploadFlow:
    """
    Orchestrates the document upload flow.

    Flow:
    1. Validate → Cheap file checks, nothing sent on failure
    2. Register → UploadedFile record (processing)
    3. Extract → Send to Gemini (never raises)
    4. Normalize → Repair every raw candidate
    5. Stage → Put the batch up for review (PAUSE - require confirmation)
    6. Confirm/Reject → User explicitly decides
    7. Save → Permanent transactions, tax recomputed

    Human confirmation (step 6) is MANDATORY.
    The system NEVER auto-saves extracted data.
    """

    def __init__(
        self,
        state: AppState,
        extractor: Optional[GeminiDocumentExtractor] = None,
        file_validator: Optional[FileValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._state = state
        self._extractor = extractor or GeminiDocumentExtractor()
        self._file_validator = file_validator or FileValidator()
        self._audit_logger = audit_logger

    async def process_document(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str,
        document_type: Optional[str] = None,
        user_context: Optional[ExtractionUserContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UploadOutcome:
        """
        Validate, extract and stage one document.

        A failed or empty extraction is reported through notifications
        and the returned outcome. Only a storage failure raises.
        """
        correlation_id = correlation_id or create_correlation_id()

        validation = self._file_validator.validate_file(
            file_name, len(file_bytes), mime_type, document_type
        )
        if not validation.is_valid:
            self._state.add_notification(
                NotificationType.ERROR,
                "Upload Failed",
                "; ".join(validation.errors),
            )
            if self._audit_logger:
                await self._audit_logger.log_file_rejected(
                    file_name=file_name,
                    errors=validation.errors,
                    correlation_id=correlation_id,
                )
            return UploadOutcome(validation=validation)

        uploaded = self._state.register_uploaded_file(UploadedFile(
            file_name=file_name,
            file_size=len(file_bytes),
            mime_type=mime_type,
            document_type=document_type or DocumentType.GENERAL.value,
            status=FileUploadStatus.PROCESSING,
        ))

        if self._audit_logger:
            await self._audit_logger.log_file_uploaded(
                file_id=uploaded.id,
                file_name=file_name,
                file_size=uploaded.file_size,
                correlation_id=correlation_id,
            )

        # Reserve the attempt before suspending so a newer upload wins
        attempt = self._state.pending.begin_extraction()

        result = await self._extractor.extract(
            file_bytes,
            mime_type,
            file_name,
            document_type=document_type,
            user_context=user_context or extraction_context(self._state),
        )

        # A newer upload started while this one was in flight
        if self._state.pending.is_stale(attempt):
            return await self._handle_stale(
                uploaded, validation, result, attempt, correlation_id
            )

        if not result.success:
            return await self._handle_failure(uploaded, validation, result, correlation_id)

        candidates = normalize_candidates(
            result.extracted_data.transactions,
            document_id=file_name,
        )
        detected_type = result.extracted_data.document_type or uploaded.document_type

        uploaded = self._state.update_file_status(
            uploaded.id,
            FileUploadStatus.COMPLETED,
            transaction_count=len(candidates),
        ) or uploaded

        if self._audit_logger:
            await self._audit_logger.log_extraction_completed(
                file_id=uploaded.id,
                document_type=detected_type,
                transaction_count=len(candidates),
                confidence=result.extracted_data.confidence,
                correlation_id=correlation_id,
            )

        if not candidates:
            self._state.add_notification(
                NotificationType.INFO,
                "No Transactions Found",
                f"No transactions were found in {file_name}.",
            )
            if self._audit_logger:
                await self._audit_logger.log_extraction_empty(
                    file_id=uploaded.id,
                    correlation_id=correlation_id,
                )
            return UploadOutcome(
                validation=validation,
                uploaded_file=uploaded,
                extraction=result,
            )

        document = ExtractedDocument(
            document_type=detected_type,
            file_name=file_name,
            confidence=result.extracted_data.confidence,
            employee_details=result.extracted_data.employee_details,
        )
        staged = self._state.pending.stage(candidates, document, attempt=attempt)

        if not staged:
            return await self._handle_stale(
                uploaded, validation, result, attempt, correlation_id
            )

        self._state.add_notification(
            NotificationType.SUCCESS,
            "Document Processed Successfully",
            f"Extracted {len(candidates)} transactions from {file_name}. "
            "Please review and confirm.",
        )
        if self._audit_logger:
            await self._audit_logger.log_batch_staged(
                file_name=file_name,
                candidate_count=len(candidates),
                correlation_id=correlation_id,
            )

        return UploadOutcome(
            validation=validation,
            uploaded_file=uploaded,
            extraction=result,
            staged_count=len(candidates),
        )

    async def _handle_failure(
        self,
        uploaded: UploadedFile,
        validation: FileValidationResult,
        result: ExtractionResult,
        correlation_id: UUID,
    ) -> UploadOutcome:
        error = result.error or "Unknown error"
        uploaded = self._state.update_file_status(
            uploaded.id,
            FileUploadStatus.FAILED,
            error=error,
        ) or uploaded

        self._state.add_notification(
            NotificationType.ERROR,
            "Processing Failed",
            f"Failed to process {uploaded.file_name}: {error}",
        )
        if self._audit_logger:
            await self._audit_logger.log_extraction_failed(
                file_id=uploaded.id,
                error_message=error,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=error,
                correlation_id=correlation_id,
            )

        return UploadOutcome(
            validation=validation,
            uploaded_file=uploaded,
            extraction=result,
        )

    async def _handle_stale(
        self,
        uploaded: UploadedFile,
        validation: FileValidationResult,
        result: ExtractionResult,
        attempt: int,
        correlation_id: UUID,
    ) -> UploadOutcome:
        """Drop a superseded result silently; the newer upload reports."""
        uploaded = self._state.update_file_status(
            uploaded.id,
            FileUploadStatus.FAILED,
            error=SUPERSEDED_ERROR,
        ) or uploaded

        if self._audit_logger:
            await self._audit_logger.log_extraction_stale(
                file_id=uploaded.id,
                attempt=attempt,
                correlation_id=correlation_id,
            )

        return UploadOutcome(
            validation=validation,
            uploaded_file=uploaded,
            extraction=result,
            stale=True,
        )

    # =========================================================================
    # REVIEW
    # =========================================================================

    async def edit_pending(
        self,
        index: int,
        updates: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, ValidationResult]:
        """
        Edit one staged candidate.

        Returns:
            (edited, validation_result). edited is False for an
            out-of-range index or invalid values.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            edited = self._state.pending.edit(index, updates)
        except ValidationError as e:
            issues = issues_from_validation_error(e, model_level_field="category")
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    subject="pending_transaction",
                    issues=[i.model_dump() for i in issues],
                    correlation_id=correlation_id,
                )
            return False, ValidationResult(is_valid=False, issues=issues)

        if edited and self._audit_logger:
            await self._audit_logger.log_pending_edited(
                index=index,
                fields=sorted(updates),
                correlation_id=correlation_id,
            )
        return edited, ValidationResult(is_valid=True)

    async def remove_pending(
        self,
        index: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()

        removed = self._state.pending.remove(index)
        if removed and self._audit_logger:
            await self._audit_logger.log_pending_removed(
                index=index,
                correlation_id=correlation_id,
            )
        return removed

    async def confirm_pending(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> ConfirmationResult:
        """
        Commit the staged batch.

        CRITICAL: This is called ONLY after explicit user confirmation.
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._state.pending.confirm()

        if self._audit_logger:
            for transaction in result.committed:
                await self._audit_logger.log_transaction_added(
                    transaction=transaction,
                    correlation_id=correlation_id,
                )

        if result.error:
            self._state.add_notification(
                NotificationType.ERROR,
                "Confirmation Incomplete",
                f"{result.committed_count} transactions added, "
                f"{result.remaining} still pending: {result.error}",
            )
            if self._audit_logger:
                await self._audit_logger.log_partial_commit(
                    committed_count=result.committed_count,
                    remaining_count=result.remaining,
                    error_message=result.error,
                    correlation_id=correlation_id,
                )
        elif result.committed:
            self._state.add_notification(
                NotificationType.SUCCESS,
                "Transactions Added",
                f"{result.committed_count} transactions added to your records.",
            )
            if self._audit_logger:
                await self._audit_logger.log_user_confirmed(
                    committed_count=result.committed_count,
                    remaining_count=result.remaining,
                    correlation_id=correlation_id,
                )

        return result

    async def reject_pending(
        self,
        reason: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Record that the user discarded the staged batch.

        Permanent transactions are untouched.
        """
        correlation_id = correlation_id or create_correlation_id()

        discarded = len(self._state.pending.candidates)
        rejected = self._state.pending.reject()

        if rejected and self._audit_logger:
            await self._audit_logger.log_user_rejected(
                discarded_count=discarded,
                reason=reason,
                correlation_id=correlation_id,
            )
        return rejected


class TransactionFlow:
    """
    Manual transaction entry, edit and delete.

    Manual data goes through the two-stage validator and is either
    recorded as typed or rejected with per-field issues.
    """

    def __init__(
        self,
        state: AppState,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._state = state
        self._audit_logger = audit_logger

    async def add_manual(
        self,
        data: dict[str, Any],
        today: Optional[dt.date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], ValidationResult]:
        """
        Validate and record a hand-entered transaction.

        Returns:
            (transaction, validation_result). transaction is None when
            validation failed; warnings don't block.
        """
        correlation_id = correlation_id or create_correlation_id()

        validator = TransactionValidator(self._state.transactions)
        draft, result = validator.validate(data, today=today)

        if draft is None:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    subject="transaction",
                    issues=[i.model_dump() for i in result.issues],
                    correlation_id=correlation_id,
                )
            return None, result

        transaction = self._state.add_transaction(draft)

        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                transaction=transaction,
                correlation_id=correlation_id,
            )
        return transaction, result

    async def update(
        self,
        transaction_id: UUID,
        updates: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], ValidationResult]:
        """
        Raises:
            TransactionNotFoundError: Unknown id
            ValueError: Attempt to change id or timestamps
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            updated = self._state.update_transaction(transaction_id, updates)
        except ValidationError as e:
            issues = issues_from_validation_error(e, model_level_field="category")
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    subject="transaction",
                    issues=[i.model_dump() for i in issues],
                    correlation_id=correlation_id,
                )
            return None, ValidationResult(is_valid=False, issues=issues)

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                transaction_id=transaction_id,
                fields=sorted(updates),
                correlation_id=correlation_id,
            )
        return updated, ValidationResult(is_valid=True)

    async def delete(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()

        deleted = self._state.delete_transaction(transaction_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )
        return deleted


class AssistantFlow:
    """
    Orchestrates the assistant conversation.

    CRITICAL BOUNDARIES:
    1. The question is appended to the chat history
    2. The snapshot is built from computed state (deterministic)
    3. The agent answers from the snapshot
    4. The answer is appended to the chat history

    The agent never touches the state directly.
    """

    def __init__(
        self,
        state: AppState,
        agent: Optional[TaxAssistantAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._state = state
        self._agent = agent or TaxAssistantAgent()
        self._audit_logger = audit_logger

    async def ask(
        self,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Answer a question about the user's taxes.

        Raises:
            ValueError: Blank message
        """
        correlation_id = correlation_id or create_correlation_id()

        message = message.strip()
        if not message:
            raise ValueError("Message cannot be empty")

        self._state.add_chat_message(ChatRole.USER, message)

        snapshot = build_financial_snapshot(
            self._state.user_profile,
            self._state.transactions,
            self._state.tax_calculation,
            self._state.deduction_utilization,
        )
        reply = await self._agent.reply(snapshot, list(self._state.chat_history))

        self._state.add_chat_message(ChatRole.MODEL, reply)

        if self._audit_logger:
            await self._audit_logger.log_assistant_queried(
                message_length=len(message),
                correlation_id=correlation_id,
            )
            # The question is always the latest turn, so a fallback means Gemini failed
            if reply == FALLBACK_REPLY:
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message="Assistant returned the fallback reply",
                    correlation_id=correlation_id,
                )
        return reply


def create_app_components(
    use_storage: bool = True,
) -> tuple[AppState, DocumentUploadFlow, TransactionFlow, AssistantFlow]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist state and audit events to the
                    local files named in StorageSettings.
                    Set to False for testing without storage.

    Returns:
        (state, document_upload_flow, transaction_flow, assistant_flow)
    """
    if use_storage:
        state = AppState(storage=JsonFileStateStorage())
        audit_logger = AuditLogger(JsonlAuditStorage())
        try:
            state.load()
        except CorruptStateError as e:
            # Start fresh; the unreadable file is replaced on the next save
            logger.error("state_load_failed", error=str(e))
    else:
        state = AppState()
        audit_logger = AuditLogger()  # Local-only logging

    document_flow = DocumentUploadFlow(state, audit_logger=audit_logger)
    transaction_flow = TransactionFlow(state, audit_logger=audit_logger)
    assistant_flow = AssistantFlow(state, audit_logger=audit_logger)

    return state, document_flow, transaction_flow, assistant_flow
