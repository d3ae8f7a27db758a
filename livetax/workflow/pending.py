"""
Pending-Transaction Confirmation Workflow

CRITICAL: This is the ONLY path by which AI-extracted data becomes a
permanent transaction.

AI suggests → Human reviews/edits → Human confirms → System records

DESIGN DECISION: A single staging slot.
Only one extracted batch is reviewable at a time. Staging a new batch
replaces the previous one (last-extraction-wins). Because extraction is
async, every extraction is given an attempt number up front; a result
that comes back after a newer attempt has been started is stale and
dropped instead of clobbering the newer batch.

States:
- EMPTY: nothing to review
- STAGED: a non-empty batch is waiting for the user

There is no separate "confirmed" state: a batch that is fully
committed or rejected simply becomes EMPTY again.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from livetax.models.extraction import ExtractedDocument
from livetax.models.transaction import PendingTransaction, Transaction
from livetax.services.storage.interface import StorageError

if TYPE_CHECKING:
    from livetax.state import AppState


logger = structlog.get_logger("livetax.workflow")


class WorkflowState(str, Enum):
    EMPTY = "empty"
    STAGED = "staged"


class ConfirmationResult(BaseModel):
    """
    Outcome of confirming a staged batch.

    A failure part-way through is reported here, not raised:
    everything in `committed` is permanent, `remaining` candidates are
    still pending.
    """

    committed: list[Transaction] = Field(default_factory=list)
    remaining: int = Field(default=0, ge=0)
    error: Optional[str] = None

    @property
    def committed_count(self) -> int:
        return len(self.committed)

    @property
    def is_complete(self) -> bool:
        return self.error is None and self.remaining == 0


class PendingTransactionWorkflow:
    """
    Manages the staged batch held by the application state.

    The batch itself (candidates and document metadata) lives on the
    AppState so that it is persisted with everything else. This class
    owns the transitions and the extraction attempt counter.
    """

    def __init__(self, state: "AppState"):
        self._state = state
        self._latest_attempt = 0

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> WorkflowState:
        if self._state.pending_transactions:
            return WorkflowState.STAGED
        return WorkflowState.EMPTY

    @property
    def is_visible(self) -> bool:
        """Should the review screen be shown?"""
        return self.state == WorkflowState.STAGED

    @property
    def candidates(self) -> list[PendingTransaction]:
        return list(self._state.pending_transactions)

    @property
    def document(self) -> Optional[ExtractedDocument]:
        return self._state.temp_extracted_data

    @property
    def latest_attempt(self) -> int:
        return self._latest_attempt

    # =========================================================================
    # STAGING
    # =========================================================================

    def begin_extraction(self) -> int:
        """Reserve an attempt number for an extraction about to start."""
        self._latest_attempt += 1
        return self._latest_attempt

    def is_stale(self, attempt: Optional[int]) -> bool:
        return attempt is not None and attempt < self._latest_attempt

    def stage(
        self,
        candidates: list[PendingTransaction],
        document: ExtractedDocument,
        attempt: Optional[int] = None,
    ) -> bool:
        """
        Replace the current batch with a new one.

        Returns False (and changes nothing) if the result belongs to a
        superseded extraction attempt.
        """
        if self.is_stale(attempt):
            logger.warning(
                "stale_extraction_dropped",
                attempt=attempt,
                latest_attempt=self._latest_attempt,
                file_name=document.file_name,
            )
            return False

        if self._state.pending_transactions:
            logger.info(
                "pending_batch_replaced",
                discarded=len(self._state.pending_transactions),
            )

        if candidates:
            self._state.pending_transactions = list(candidates)
            self._state.temp_extracted_data = document.model_copy(
                update={"attempt": attempt if attempt is not None else document.attempt}
            )
        else:
            self._clear()

        self._state.persist()
        logger.info(
            "pending_batch_staged",
            count=len(candidates),
            file_name=document.file_name,
            attempt=attempt,
        )
        return True

    # =========================================================================
    # REVIEW
    # =========================================================================

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._state.pending_transactions)

    def edit(self, index: int, updates: dict[str, Any]) -> bool:
        """
        Update fields of one candidate.

        Out-of-range index is a no-op (returns False). The merged values
        are re-validated; invalid values raise pydantic.ValidationError
        and leave the candidate untouched.
        """
        if not self._in_range(index):
            return False

        current = self._state.pending_transactions[index]
        updated = PendingTransaction.model_validate({**current.model_dump(), **updates})
        self._state.pending_transactions[index] = updated
        self._state.persist()

        logger.info("pending_candidate_edited", index=index, fields=sorted(updates))
        return True

    def remove(self, index: int) -> bool:
        """Drop one candidate. Emptying the batch clears it."""
        if not self._in_range(index):
            return False

        self._state.pending_transactions.pop(index)
        if not self._state.pending_transactions:
            self._clear()
        self._state.persist()

        logger.info("pending_candidate_removed", index=index)
        return True

    # =========================================================================
    # DECISION
    # =========================================================================

    def confirm(self) -> ConfirmationResult:
        """
        Commit every remaining candidate, in order.

        Each candidate is promoted to a strict draft and appended through
        AppState.add_transaction (which recomputes tax and utilization),
        then taken off the batch. The first failure stops the loop.
        """
        if self.state == WorkflowState.EMPTY:
            return ConfirmationResult()

        pending = self._state.pending_transactions
        committed: list[Transaction] = []
        error: Optional[str] = None

        while pending:
            try:
                draft = pending[0].to_draft()
            except ValidationError as e:
                error = f"Candidate '{pending[0].description}' is invalid: {e.error_count()} errors"
                logger.warning(
                    "pending_confirm_invalid_candidate",
                    description=pending[0].description,
                    errors=e.errors(include_url=False),
                )
                break

            committed.append(self._state.add_transaction(draft, persist=False))
            pending.pop(0)

        if not pending:
            self._clear()

        if committed:
            self._state.refresh_insights()

        try:
            self._state.persist()
        except StorageError as e:
            logger.error("pending_confirm_persist_failed", error=str(e))
            error = error or f"Failed to save confirmed transactions: {e}"

        logger.info(
            "pending_batch_confirmed",
            committed=len(committed),
            remaining=len(pending),
            error=error,
        )
        return ConfirmationResult(
            committed=committed,
            remaining=len(pending),
            error=error,
        )

    def reject(self) -> bool:
        """Discard the whole batch. Returns False if there was nothing to reject."""
        if self.state == WorkflowState.EMPTY:
            return False

        discarded = len(self._state.pending_transactions)
        self._clear()
        self._state.persist()

        logger.info("pending_batch_rejected", discarded=discarded)
        return True

    def _clear(self) -> None:
        self._state.pending_transactions = []
        self._state.temp_extracted_data = None
