"""AI agents package."""

from livetax.agents.assistant import (
    FALLBACK_REPLY,
    TaxAssistantAgent,
    build_financial_snapshot,
)

__all__ = [
    "FALLBACK_REPLY",
    "TaxAssistantAgent",
    "build_financial_snapshot",
]
