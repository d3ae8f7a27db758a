"""
Application State

The single owner of every piece of mutable data in a LiveTax session.

DESIGN DECISION: Recompute-on-write.
Every transaction mutation goes through one method here, and each of
those methods recomputes deduction utilization and the regime
comparison synchronously before returning. Derived values are never
read back from storage; on load they are rebuilt from the transactions.

CRITICAL: Mutations run to completion without suspension. Only the
extractor and assistant calls (in the orchestrator) are async, so no
locking is needed.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog

from livetax.calculations import compute_regime_comparison, compute_utilization
from livetax.config import AppSettings, get_settings
from livetax.insights import generate_insights
from livetax.models.chat import ASSISTANT_GREETING, ChatMessage, ChatRole
from livetax.models.extraction import (
    ExtractedDocument,
    FileUploadStatus,
    UploadedFile,
)
from livetax.models.insight import Insight, Notification, NotificationType
from livetax.models.profile import UserProfile
from livetax.models.state import PersistedState
from livetax.models.tax import DeductionUtilization, TaxCalculation, TaxSettings
from livetax.models.transaction import (
    PendingTransaction,
    Transaction,
    TransactionDraft,
    utcnow,
)
from livetax.services.storage.interface import StateStorageInterface
from livetax.workflow.pending import PendingTransactionWorkflow


logger = structlog.get_logger("livetax.state")

IMMUTABLE_TRANSACTION_FIELDS = frozenset({"id", "created_at", "updated_at"})


class TransactionNotFoundError(Exception):
    """No permanent transaction with the given id."""

    def __init__(self, transaction_id: UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class AppState:
    """
    Explicit application state.

    Holds the source-of-truth data (profile, transactions, settings,
    uploaded files, staged batch), the derived snapshots (utilization,
    tax calculation, insights) and transient session data
    (notifications, chat history).

    Args:
        storage: Where to persist. If None, nothing is persisted.
        settings: App settings. Defaults to get_settings().app.
    """

    def __init__(
        self,
        storage: Optional[StateStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app

        # Source of truth (persisted)
        self.user_profile: Optional[UserProfile] = None
        self.is_new_user: bool = True
        self.transactions: list[Transaction] = []
        self.tax_settings: TaxSettings = TaxSettings()
        self.uploaded_files: list[UploadedFile] = []
        self.temp_extracted_data: Optional[ExtractedDocument] = None
        self.pending_transactions: list[PendingTransaction] = []

        # Derived (rebuilt, never persisted)
        self.deduction_utilization: DeductionUtilization = compute_utilization(
            [], self.hra_limit
        )
        self.tax_calculation: Optional[TaxCalculation] = None
        self.insights: list[Insight] = []

        # Transient
        self.notifications: list[Notification] = []
        self.chat_history: list[ChatMessage] = [
            ChatMessage(role=ChatRole.MODEL, text=ASSISTANT_GREETING)
        ]

        self.pending = PendingTransactionWorkflow(self)

    @property
    def hra_limit(self) -> Decimal:
        return self._settings.hra_deduction_limit

    @property
    def settings(self) -> AppSettings:
        return self._settings

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def snapshot(self) -> PersistedState:
        """The persistable part of the state."""
        return PersistedState(
            user_profile=self.user_profile,
            is_new_user=self.is_new_user,
            transactions=list(self.transactions),
            tax_settings=self.tax_settings,
            uploaded_files=list(self.uploaded_files),
            temp_extracted_data=self.temp_extracted_data,
            pending_transactions=list(self.pending_transactions),
        )

    def persist(self) -> None:
        """
        Rewrite the whole persisted record.

        Raises:
            StorageError: If the backend fails to write
        """
        if self._storage is None:
            return
        self._storage.save(self.snapshot())

    def load(self) -> bool:
        """
        Restore state from storage and rebuild everything derived.

        Returns False if there was nothing stored.

        Raises:
            CorruptStateError: If the stored record can't be parsed
        """
        if self._storage is None:
            return False

        stored = self._storage.load()
        if stored is None:
            logger.info("state_load_empty")
            return False

        self.user_profile = stored.user_profile
        self.is_new_user = stored.is_new_user
        self.transactions = list(stored.transactions)
        self.tax_settings = stored.tax_settings
        self.uploaded_files = list(stored.uploaded_files)
        self.temp_extracted_data = stored.temp_extracted_data
        self.pending_transactions = list(stored.pending_transactions)

        self.insights = []
        self.recalculate()
        if self.transactions:
            self.refresh_insights()

        logger.info(
            "state_loaded",
            transactions=len(self.transactions),
            pending=len(self.pending_transactions),
        )
        return True

    # =========================================================================
    # DERIVED STATE
    # =========================================================================

    def recalculate(self) -> None:
        """Replace utilization and the tax calculation wholesale."""
        self.deduction_utilization = compute_utilization(self.transactions, self.hra_limit)
        self.tax_calculation = compute_regime_comparison(self.transactions, self.tax_settings)

    def refresh_insights(self, today: Optional[dt.date] = None) -> list[Insight]:
        """
        Generate insights and keep the ones not already held.

        Returns only the newly added insights.
        """
        new_insights = generate_insights(
            self.transactions,
            self.deduction_utilization,
            self.tax_calculation,
            today=today,
            existing_titles=[i.title for i in self.insights],
        )
        self.insights.extend(new_insights)
        return new_insights

    def mark_insight_read(self, insight_id: UUID) -> bool:
        for index, insight in enumerate(self.insights):
            if insight.id == insight_id:
                self.insights[index] = insight.model_copy(update={"is_read": True})
                return True
        return False

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def add_transaction(self, draft: TransactionDraft, *, persist: bool = True) -> Transaction:
        """
        Record a new permanent transaction.

        The draft has already passed strict validation; identity and
        timestamps are assigned here.
        """
        transaction = Transaction.from_draft(draft)
        self.transactions.append(transaction)
        self.recalculate()

        logger.info(
            "transaction_added",
            transaction_id=str(transaction.id),
            type=transaction.type.value,
            category=transaction.category.value,
            amount=str(transaction.amount),
            source=transaction.source.value if transaction.source else None,
        )

        if persist:
            self.persist()
        return transaction

    def update_transaction(self, transaction_id: UUID, updates: dict[str, Any]) -> Transaction:
        """
        Apply field updates to a permanent transaction.

        The merged record is re-validated with the same strict rules as
        a new one; id and created_at never change.

        Raises:
            TransactionNotFoundError: Unknown id
            ValueError: Attempt to change an immutable field
            pydantic.ValidationError: Merged values are invalid
        """
        forbidden = IMMUTABLE_TRANSACTION_FIELDS.intersection(updates)
        if forbidden:
            raise ValueError(f"Cannot change immutable fields: {sorted(forbidden)}")

        for index, existing in enumerate(self.transactions):
            if existing.id == transaction_id:
                break
        else:
            raise TransactionNotFoundError(transaction_id)

        draft = TransactionDraft.model_validate(
            {**existing.to_draft().model_dump(), **updates}
        )
        updated = Transaction(
            id=existing.id,
            created_at=existing.created_at,
            updated_at=utcnow(),
            **draft.model_dump(),
        )
        self.transactions[index] = updated
        self.recalculate()

        logger.info(
            "transaction_updated",
            transaction_id=str(transaction_id),
            fields=sorted(updates),
        )

        self.persist()
        return updated

    def delete_transaction(self, transaction_id: UUID) -> bool:
        """Remove a permanent transaction. Returns False if the id is unknown."""
        remaining = [t for t in self.transactions if t.id != transaction_id]
        if len(remaining) == len(self.transactions):
            return False

        self.transactions = remaining
        self.recalculate()

        logger.info("transaction_deleted", transaction_id=str(transaction_id))

        self.persist()
        return True

    # =========================================================================
    # PROFILE & SETTINGS
    # =========================================================================

    def set_user_profile(self, profile: UserProfile) -> UserProfile:
        """Store the profile captured at onboarding."""
        self.user_profile = profile
        self.is_new_user = False
        logger.info("user_profile_set", user_type=profile.user_type.value)
        self.persist()
        return profile

    def update_user_profile(self, updates: dict[str, Any]) -> UserProfile:
        """
        Merge top-level profile fields into the existing profile.

        Raises:
            pydantic.ValidationError: Merged profile is invalid
        """
        base = self.user_profile.model_dump() if self.user_profile else {}
        profile = UserProfile.model_validate({**base, **updates, "updated_at": utcnow()})
        self.user_profile = profile
        self.is_new_user = False
        logger.info("user_profile_updated", fields=sorted(updates))
        self.persist()
        return profile

    def mark_as_returning_user(self) -> None:
        self.is_new_user = False
        self.persist()

    def set_tax_settings(self, **updates: Any) -> TaxSettings:
        """Change calculation preferences and recompute."""
        self.tax_settings = TaxSettings.model_validate(
            {**self.tax_settings.model_dump(), **updates}
        )
        self.recalculate()
        logger.info("tax_settings_updated", **self.tax_settings.model_dump(mode="json"))
        self.persist()
        return self.tax_settings

    # =========================================================================
    # UPLOADED FILES
    # =========================================================================

    def register_uploaded_file(self, uploaded: UploadedFile) -> UploadedFile:
        self.uploaded_files.append(uploaded)
        self.persist()
        return uploaded

    def update_file_status(
        self,
        file_id: UUID,
        status: FileUploadStatus,
        *,
        transaction_count: Optional[int] = None,
        error: Optional[str] = None,
    ) -> Optional[UploadedFile]:
        for index, uploaded in enumerate(self.uploaded_files):
            if uploaded.id == file_id:
                changes: dict[str, Any] = {"status": status, "error": error}
                if transaction_count is not None:
                    changes["transaction_count"] = transaction_count
                updated = uploaded.model_copy(update=changes)
                self.uploaded_files[index] = updated
                self.persist()
                return updated
        return None

    def remove_uploaded_file(self, file_id: UUID) -> bool:
        remaining = [f for f in self.uploaded_files if f.id != file_id]
        if len(remaining) == len(self.uploaded_files):
            return False
        self.uploaded_files = remaining
        self.persist()
        return True

    # =========================================================================
    # NOTIFICATIONS & CHAT (transient)
    # =========================================================================

    def add_notification(
        self,
        type_: NotificationType,
        title: str,
        message: str,
    ) -> Notification:
        notification = Notification(type=type_, title=title, message=message)
        self.notifications.append(notification)
        return notification

    def remove_notification(self, notification_id: UUID) -> bool:
        remaining = [n for n in self.notifications if n.id != notification_id]
        removed = len(remaining) != len(self.notifications)
        self.notifications = remaining
        return removed

    def add_chat_message(self, role: ChatRole, text: str) -> ChatMessage:
        message = ChatMessage(role=role, text=text)
        self.chat_history.append(message)
        return message
