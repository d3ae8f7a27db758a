"""
Gemini Document Extraction Service

Sends an uploaded financial document (Form 16, salary slip, investment
proof, business document) to Gemini and parses the JSON it returns.

DESIGN DECISION: Gemini is an UNTRUSTED ORACLE.
- It may refuse (safety/recitation), truncate, return nothing, or wrap
  its JSON in markdown fences.
- Whatever it returns is only a proposal. Transactions are left raw
  here and repaired by the extraction normalizer before anyone sees them.

IMPORTANT: extract() NEVER raises. Every failure comes back as an
ExtractionResult with success=False and a readable error message, so the
upload flow can tell the user what went wrong.
"""

import json
import time
from typing import Any, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from livetax.config import GeminiSettings, get_settings
from livetax.models.extraction import (
    DocumentType,
    ExtractedDocumentData,
    ExtractionMetadata,
    ExtractionResult,
    ExtractionUserContext,
)


logger = structlog.get_logger("livetax.extractor")


DEFAULT_CONFIDENCE = 0.8

# Google API errors worth retrying
TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)


class ExtractionError(Exception):
    """Base exception for document extraction errors."""
    pass


class ResponseBlockedError(ExtractionError):
    """Gemini refused to answer (safety or recitation filters)."""
    pass


class ResponseTruncatedError(ExtractionError):
    """Gemini hit the output token limit."""
    pass


class EmptyResponseError(ExtractionError):
    """Gemini returned no usable text."""
    pass


class MalformedResponseError(ExtractionError):
    """Gemini's text is not the JSON object we asked for."""
    pass


# =============================================================================
# PROMPTS
# =============================================================================

DOCUMENT_PROMPTS: dict[str, str] = {
    DocumentType.FORM16.value: """
Analyze this Form 16 document and extract the following financial information in JSON format:

{
  "documentType": "form16",
  "employeeDetails": {
    "name": "string",
    "pan": "string",
    "employerName": "string",
    "assessmentYear": "string"
  },
  "transactions": [
    {
      "type": "Income|Deduction|Expense",
      "category": "Salary Income|80C Deduction|80D Medical|HRA|Professional Tax",
      "amount": number,
      "description": "string",
      "date": "YYYY-MM-DD",
      "hasReceipt": boolean
    }
  ],
  "confidence": number (0-1)
}

Extract ALL salary components, deductions, and TDS details. Be precise with amounts.
""",
    DocumentType.SALARY_SLIP.value: """
Extract salary data as JSON:

Rules:
- Basic Pay/Allowances → "Income", "Salary Income"
- PF/EPF → "Deduction", "80C Deduction"
- Medical Insurance → "Deduction", "80D Medical"
- Professional Tax → "Expense", "Professional Tax"
- TDS/Income Tax → "Expense", "Tax Paid (TDS)"

{
  "documentType": "salary_slip",
  "transactions": [
    {
      "type": "Income|Deduction|Expense",
      "category": "Salary Income|80C Deduction|80D Medical|Professional Tax|Tax Paid (TDS)",
      "amount": number,
      "description": "string",
      "date": "YYYY-MM-DD",
      "hasReceipt": true
    }
  ],
  "confidence": 0.9
}

Extract all salary components.
""",
    DocumentType.INVESTMENT_PROOF.value: """
Analyze this investment/deduction proof document and extract:

{
  "documentType": "investment_proof",
  "transactions": [
    {
      "type": "Deduction",
      "category": "80C Deduction|80D Medical",
      "amount": number,
      "description": "string (investment type/policy details)",
      "date": "YYYY-MM-DD",
      "hasReceipt": true
    }
  ],
  "confidence": number (0-1)
}
""",
    DocumentType.BUSINESS_DOCUMENT.value: """
Analyze this business document (P&L, invoice, expense receipt) and extract:

{
  "documentType": "business_document",
  "transactions": [
    {
      "type": "Income|Expense",
      "category": "Business Income|Business Expense",
      "amount": number,
      "description": "string",
      "date": "YYYY-MM-DD",
      "hasReceipt": true
    }
  ],
  "confidence": number (0-1)
}
""",
}


def build_prompt(document_type: Optional[str], context: ExtractionUserContext) -> str:
    """Document-specific prompt plus user context. Unknown types use the salary slip prompt."""
    base = DOCUMENT_PROMPTS.get(document_type or "", DOCUMENT_PROMPTS[DocumentType.SALARY_SLIP.value])
    return (
        f"{base}\n"
        "User Context:\n"
        f"- User Type: {context.user_type}\n"
        f"- Assessment Year: {context.assessment_year}\n"
        f"- Preferred Tax Regime: {context.preferred_regime.value}\n\n"
        "Important: Return ONLY valid JSON. No markdown formatting or additional text."
    )


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _finish_reason_name(value: Any) -> str:
    """Finish reasons come back as proto enums; compare by name."""
    if value is None:
        return ""
    return str(getattr(value, "name", value)).upper()


def response_text(response: Any) -> str:
    """
    Pull the text out of a generate_content response.

    Raises:
        ResponseBlockedError, ResponseTruncatedError, EmptyResponseError
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise ResponseBlockedError(
            "No valid response from Gemini API - response may have been blocked"
        )

    candidate = candidates[0]
    reason = _finish_reason_name(getattr(candidate, "finish_reason", None))

    if reason == "MAX_TOKENS":
        raise ResponseTruncatedError(
            "Response was truncated due to token limit. The document might be "
            "too large or complex. Try with a smaller/simpler document."
        )
    if reason == "SAFETY":
        raise ResponseBlockedError(
            "Response was blocked for safety reasons. The document content may "
            "have triggered safety filters."
        )
    if reason == "RECITATION":
        raise ResponseBlockedError("Response was blocked due to recitation concerns.")

    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        raise EmptyResponseError("Empty response from Gemini API")

    text = getattr(parts[0], "text", "") or ""
    if not text.strip():
        raise EmptyResponseError("No text content in Gemini response")
    return text


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrappers the model sometimes adds."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        cleaned = cleaned[first_newline + 1:] if first_newline >= 0 else cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.replace("```json", "").replace("```", "").strip()


def _safe_confidence(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def _first_key(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def parse_extraction_payload(text: str, fallback_document_type: Optional[str]) -> ExtractedDocumentData:
    """
    Parse the model's JSON into ExtractedDocumentData.

    Accepts camelCase or snake_case keys. Non-object transaction
    entries are dropped.

    Raises:
        MalformedResponseError: Not a JSON object
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Gemini response is not valid JSON: {e.msg}")

    if not isinstance(data, dict):
        raise MalformedResponseError("Gemini response is not a JSON object")

    raw_transactions = data.get("transactions")
    if not isinstance(raw_transactions, list):
        raw_transactions = []

    employee_details = _first_key(data, "employeeDetails", "employee_details")
    if not isinstance(employee_details, dict):
        employee_details = None

    document_type = _first_key(data, "documentType", "document_type")
    if not isinstance(document_type, str) or not document_type:
        document_type = fallback_document_type

    return ExtractedDocumentData(
        document_type=document_type,
        transactions=[t for t in raw_transactions if isinstance(t, dict)],
        employee_details=employee_details,
        confidence=_safe_confidence(data.get("confidence")),
    )


# =============================================================================
# SERVICE
# =============================================================================

class GeminiDocumentExtractor:
    """
    Gemini-based financial document extraction.

    Args:
        model: A configured GenerativeModel (or a test double with a
               generate_content_async coroutine). Created lazily from
               settings when None.
        settings: Gemini settings. Defaults to get_settings().gemini.
    """

    def __init__(self, model: Any = None, settings: Optional[GeminiSettings] = None):
        self._model = model
        self._settings = settings

    def _get_model(self) -> Any:
        """Lazy initialization of the Gemini model."""
        if self._model is None:
            settings = self._settings or get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,  # Low temperature for consistent extraction
                    "max_output_tokens": settings.max_tokens,
                },
            )
        return self._model

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, parts: list[Any]) -> Any:
        return await self._get_model().generate_content_async(parts)

    async def extract(
        self,
        file_bytes: bytes,
        mime_type: str,
        file_name: str,
        document_type: Optional[str] = None,
        user_context: Optional[ExtractionUserContext] = None,
    ) -> ExtractionResult:
        """
        Extract financial data from a document.

        Returns:
            ExtractionResult. On any failure success is False, error is
            set and the transaction list is empty.
        """
        context = user_context or ExtractionUserContext()
        file_size = len(file_bytes)
        started = time.monotonic()

        try:
            prompt = build_prompt(document_type, context)
            parts = [prompt, {"mime_type": mime_type, "data": file_bytes}]

            response = await self._generate(parts)
            payload = parse_extraction_payload(response_text(response), document_type)

        except ExtractionError as e:
            logger.warning(
                "extraction_failed",
                file_name=file_name,
                document_type=document_type,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ExtractionResult.failure(str(e), file_name, document_type, file_size)

        except Exception as e:
            logger.error(
                "extraction_error",
                file_name=file_name,
                document_type=document_type,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ExtractionResult.failure(
                f"Document processing failed: {e}", file_name, document_type, file_size
            )

        logger.info(
            "extraction_completed",
            file_name=file_name,
            document_type=payload.document_type,
            transactions=len(payload.transactions),
            confidence=payload.confidence,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

        return ExtractionResult(
            success=True,
            extracted_data=payload,
            metadata=ExtractionMetadata(
                document_type=payload.document_type,
                file_name=file_name,
                file_size=file_size,
                confidence=payload.confidence,
            ),
        )
