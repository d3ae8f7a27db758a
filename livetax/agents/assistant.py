"""
Tax Assistant Agent

Conversational Q&A over the user's own numbers.

CRITICAL BOUNDARIES:
- CAN: Explain the user's liability, deductions and regime choice
- CAN: Suggest actions based on the snapshot it is given
- CANNOT: Change any data (it has no write access to the state)
- MUST: Ground answers in the financial snapshot, not generic advice

The LLM is a TRANSLATOR, not an ORACLE.
Every number it sees comes from the tax engine and utilization tracker.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
import structlog

from livetax.config import GeminiSettings, get_settings
from livetax.models.chat import ChatMessage, ChatRole
from livetax.models.profile import UserProfile
from livetax.models.tax import DeductionUtilization, TaxCalculation
from livetax.models.transaction import Transaction


logger = structlog.get_logger("livetax.assistant")


FALLBACK_REPLY = (
    "I'm sorry, I encountered an error while processing your request. "
    "Please try again."
)

ASSISTANT_ACK = (
    "Understood. I am Tax Assistant, and I will answer questions based on "
    "the user's provided financial context."
)

SYSTEM_PROMPT = """You are "Tax Assistant," an expert AI tax advisor for an application called LiveTax.
Your tone is helpful, friendly, and professional.
You have access to the user's real-time financial data.
Your goal is to answer the user's questions based on their specific financial context.
NEVER give generic advice. ALWAYS use the provided data to give personalized, actionable insights.
Keep your answers concise and easy to understand. Use markdown for formatting (bold, lists).

CURRENT USER'S FINANCIAL CONTEXT (JSON):
{context}"""


def build_financial_snapshot(
    user_profile: Optional[UserProfile],
    transactions: list[Transaction],
    calculation: Optional[TaxCalculation],
    utilization: DeductionUtilization,
) -> dict[str, Any]:
    """
    The summarized context the assistant is allowed to see.

    Profile fields, both liabilities, deduction utilization, total
    income and the number of transactions. JSON-safe.
    """
    snapshot: dict[str, Any] = {}
    if user_profile is not None:
        snapshot.update(user_profile.model_dump(
            mode="json",
            exclude={"created_at", "updated_at"},
        ))

    snapshot["tax_liability"] = {
        "old_regime": calculation.old_regime.tax_liability if calculation else None,
        "new_regime": calculation.new_regime.tax_liability if calculation else None,
    }
    snapshot["deductions"] = utilization.model_dump(mode="json")
    snapshot["total_income"] = (
        str(calculation.old_regime.gross_income) if calculation else None
    )
    snapshot["transaction_count"] = len(transactions)
    return snapshot


class TaxAssistantAgent:
    """
    Gemini chat agent answering tax questions.

    Args:
        model: A configured GenerativeModel (or a test double exposing
               start_chat). Created lazily from settings when None.
        settings: Gemini settings. Defaults to get_settings().gemini.
    """

    def __init__(self, model: Any = None, settings: Optional[GeminiSettings] = None):
        self._model = model
        self._settings = settings

    def _get_model(self) -> Any:
        if self._model is None:
            settings = self._settings or get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(model_name=settings.model_name)
        return self._model

    @staticmethod
    def _chat_history(snapshot: dict[str, Any], history: list[ChatMessage]) -> list[dict]:
        system = SYSTEM_PROMPT.format(context=json.dumps(snapshot, indent=2, default=str))
        turns = [
            {"role": ChatRole.USER.value, "parts": [system]},
            {"role": ChatRole.MODEL.value, "parts": [ASSISTANT_ACK]},
        ]

        # The canned greeting isn't part of the real conversation
        seen_user = False
        for message in history:
            if message.role == ChatRole.USER:
                seen_user = True
            elif not seen_user:
                continue
            turns.append({"role": message.role.value, "parts": [message.text]})
        return turns

    async def reply(self, snapshot: dict[str, Any], history: list[ChatMessage]) -> str:
        """
        Answer the latest user message in history.

        Never raises: any failure returns the fixed apology text.
        """
        if not history or history[-1].role != ChatRole.USER:
            logger.warning("assistant_no_user_message")
            return FALLBACK_REPLY

        latest = history[-1].text
        try:
            chat = self._get_model().start_chat(
                history=self._chat_history(snapshot, history[:-1])
            )
            response = await chat.send_message_async(latest)
            text = response.text.strip()
        except Exception as e:
            logger.error("assistant_failed", error_type=type(e).__name__, error=str(e))
            return FALLBACK_REPLY

        if not text:
            return FALLBACK_REPLY
        return text
