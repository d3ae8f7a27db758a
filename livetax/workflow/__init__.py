"""Human-in-the-loop review of extracted transactions."""

from livetax.workflow.pending import (
    ConfirmationResult,
    PendingTransactionWorkflow,
    WorkflowState,
)

__all__ = [
    "ConfirmationResult",
    "PendingTransactionWorkflow",
    "WorkflowState",
]
