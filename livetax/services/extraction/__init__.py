"""Document extraction services."""

from livetax.services.extraction.gemini_extractor import (
    DOCUMENT_PROMPTS,
    EmptyResponseError,
    ExtractionError,
    GeminiDocumentExtractor,
    MalformedResponseError,
    ResponseBlockedError,
    ResponseTruncatedError,
    build_prompt,
    parse_extraction_payload,
    response_text,
    strip_code_fences,
)

__all__ = [
    "DOCUMENT_PROMPTS",
    "EmptyResponseError",
    "ExtractionError",
    "GeminiDocumentExtractor",
    "MalformedResponseError",
    "ResponseBlockedError",
    "ResponseTruncatedError",
    "build_prompt",
    "parse_extraction_payload",
    "response_text",
    "strip_code_fences",
]
