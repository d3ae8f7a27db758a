"""
Tests for the Gemini document extractor.

Gemini is replaced by FakeGenerativeModel; no network access.
"""

import asyncio
import json

import pytest
from google.api_core import exceptions as google_exceptions
from tenacity import wait_none

from livetax.models.extraction import ExtractionUserContext
from livetax.models.tax import TaxRegime
from livetax.services.extraction import (
    GeminiDocumentExtractor,
    MalformedResponseError,
    build_prompt,
    parse_extraction_payload,
    strip_code_fences,
)

from conftest import FakeGenerativeModel, gemini_response


PAYSLIP_JSON = json.dumps({
    "documentType": "salary_slip",
    "transactions": [
        {"type": "Income", "category": "Salary Income", "amount": 50000,
         "description": "Basic Pay", "date": "2024-04-30", "hasReceipt": True},
        {"type": "Expense", "category": "Professional Tax", "amount": 200,
         "description": "Professional Tax", "date": "2024-04-30", "hasReceipt": True},
    ],
    "confidence": 0.92,
})


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """Retries happen immediately in tests."""
    monkeypatch.setattr(GeminiDocumentExtractor._generate.retry, "wait", wait_none())


def _extract(model, **kwargs):
    extractor = GeminiDocumentExtractor(model=model)
    return asyncio.run(extractor.extract(
        b"%PDF-1.4 fake",
        "application/pdf",
        "payslip_april.pdf",
        **kwargs,
    ))


class TestPrompts:

    def test_document_specific_prompt(self):
        """Form 16 gets the Form 16 prompt."""
        prompt = build_prompt("form16", ExtractionUserContext())
        assert "Form 16" in prompt
        assert "Return ONLY valid JSON" in prompt

    def test_unknown_type_uses_salary_slip(self):
        prompt = build_prompt("general", ExtractionUserContext())
        assert '"documentType": "salary_slip"' in prompt

    def test_user_context_included(self):
        context = ExtractionUserContext(
            user_type="business",
            assessment_year="2025-26",
            preferred_regime=TaxRegime.NEW,
        )
        prompt = build_prompt("business_document", context)
        assert "- User Type: business" in prompt
        assert "- Assessment Year: 2025-26" in prompt
        assert "- Preferred Tax Regime: new" in prompt


class TestResponseParsing:

    def test_code_fences_stripped(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_snake_case_keys_accepted(self):
        payload = parse_extraction_payload(
            '{"document_type": "form16", "employee_details": {"name": "Asha"}, "transactions": []}',
            None,
        )
        assert payload.document_type == "form16"
        assert payload.employee_details == {"name": "Asha"}

    def test_missing_confidence_defaults(self):
        payload = parse_extraction_payload('{"transactions": []}', "salary_slip")
        assert payload.confidence == 0.8
        assert payload.document_type == "salary_slip"

    def test_confidence_clamped(self):
        payload = parse_extraction_payload('{"transactions": [], "confidence": 7}', None)
        assert payload.confidence == 1.0

    def test_non_object_entries_dropped(self):
        payload = parse_extraction_payload('{"transactions": [{"amount": 1}, "x", 3]}', None)
        assert payload.transactions == [{"amount": 1}]

    def test_not_json(self):
        with pytest.raises(MalformedResponseError):
            parse_extraction_payload("Sorry, I can't read this.", None)

    def test_json_array_rejected(self):
        with pytest.raises(MalformedResponseError):
            parse_extraction_payload("[1, 2]", None)


class TestExtract:
    """extract() never raises; every failure is a failed result."""

    def test_success(self):
        """Test a clean payslip response."""
        model = FakeGenerativeModel(gemini_response(PAYSLIP_JSON))

        result = _extract(model, document_type="salary_slip")

        assert result.success is True
        assert result.found_transactions
        assert len(result.extracted_data.transactions) == 2
        assert result.metadata.confidence == 0.92
        assert result.metadata.file_size == len(b"%PDF-1.4 fake")

        prompt, blob = model.calls[0]
        assert "salary" in prompt.lower()
        assert blob == {"mime_type": "application/pdf", "data": b"%PDF-1.4 fake"}

    def test_fenced_response(self):
        model = FakeGenerativeModel(gemini_response(f"```json\n{PAYSLIP_JSON}\n```"))
        assert _extract(model).success is True

    def test_success_with_no_transactions(self):
        """An empty list is a success, not an error."""
        model = FakeGenerativeModel(gemini_response('{"transactions": [], "confidence": 0.5}'))
        result = _extract(model)
        assert result.success is True
        assert result.found_transactions is False

    @pytest.mark.parametrize("finish_reason,fragment", [
        ("MAX_TOKENS", "truncated"),
        ("SAFETY", "safety"),
        ("RECITATION", "recitation"),
    ])
    def test_finish_reasons(self, finish_reason, fragment):
        model = FakeGenerativeModel(gemini_response(PAYSLIP_JSON, finish_reason=finish_reason))
        result = _extract(model)
        assert result.success is False
        assert fragment in result.error.lower()
        assert result.extracted_data.transactions == []
        assert result.metadata.error is True

    def test_no_candidates(self):
        """A blocked prompt comes back with no candidates."""
        from types import SimpleNamespace
        model = FakeGenerativeModel(SimpleNamespace(candidates=[]))
        result = _extract(model)
        assert result.success is False
        assert "blocked" in result.error

    def test_empty_text(self):
        model = FakeGenerativeModel(gemini_response("   "))
        result = _extract(model)
        assert result.success is False
        assert result.error == "No text content in Gemini response"

    def test_no_parts(self):
        model = FakeGenerativeModel(gemini_response(None))
        assert _extract(model).error == "Empty response from Gemini API"

    def test_malformed_json(self):
        model = FakeGenerativeModel(gemini_response("not json"))
        result = _extract(model)
        assert result.success is False
        assert "not valid JSON" in result.error

    def test_transient_error_retried(self):
        """A 503 followed by a good answer succeeds."""
        model = FakeGenerativeModel(
            google_exceptions.ServiceUnavailable("overloaded"),
            gemini_response(PAYSLIP_JSON),
        )
        result = _extract(model)
        assert result.success is True
        assert len(model.calls) == 2

    def test_retries_exhausted(self):
        """Three transient failures: a failed result, not an exception."""
        model = FakeGenerativeModel(*[google_exceptions.ServiceUnavailable("overloaded")] * 3)
        result = _extract(model)
        assert result.success is False
        assert result.error.startswith("Document processing failed:")
        assert len(model.calls) == 3

    def test_non_transient_error_not_retried(self):
        model = FakeGenerativeModel(google_exceptions.InvalidArgument("bad file"))
        result = _extract(model)
        assert result.success is False
        assert len(model.calls) == 1
