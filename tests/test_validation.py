"""
Tests for manual-entry validation and upload file checks.

Manual data is never coerced: it is accepted as typed or rejected with
per-field issues.
"""

from datetime import date, timedelta

import pytest

from livetax.models.profile import UserType
from livetax.models.transaction import TransactionCategory, TransactionType
from livetax.validation import (
    FileValidator,
    ProfileValidator,
    TransactionValidator,
    format_file_size,
    format_validation_errors,
    get_recommended_documents,
    get_user_friendly_summary,
)


TODAY = date(2024, 6, 1)
MB = 1024 * 1024


def _entry(**overrides):
    data = {
        "date": "2024-05-10",
        "description": "Health insurance premium",
        "amount": "12000",
        "type": "Deduction",
        "category": "80D Medical",
        "has_receipt": True,
    }
    data.update(overrides)
    return data


class TestTransactionValidator:
    """Two-stage validation of manual transactions."""

    def test_valid_entry(self):
        """Test a clean entry passes with no issues."""
        draft, result = TransactionValidator().validate(_entry(), today=TODAY)
        assert result.is_valid
        assert result.issues == []
        assert draft.category == TransactionCategory.SECTION_80D

    def test_missing_amount(self):
        """Missing amount is reported on the amount field."""
        data = _entry()
        del data["amount"]
        draft, result = TransactionValidator().validate(data, today=TODAY)
        assert draft is None
        assert not result.is_valid
        assert "amount" in result.errors_by_field()

    def test_negative_amount(self):
        draft, result = TransactionValidator().validate(_entry(amount="-10"), today=TODAY)
        assert draft is None
        assert result.issues[0].issue_type == "out_of_range"

    def test_category_mismatch_attributed_to_category(self):
        """The family check has no field of its own; it lands on category."""
        draft, result = TransactionValidator().validate(
            _entry(category="Salary Income"), today=TODAY
        )
        assert draft is None
        errors = result.errors_by_field()
        assert "category" in errors
        assert errors["category"][0].startswith("Category 'Salary Income' is not valid")

    def test_unknown_category(self):
        draft, result = TransactionValidator().validate(_entry(category="Lottery"), today=TODAY)
        assert draft is None
        assert result.issues[0].issue_type == "invalid_value"

    def test_future_date_is_warning(self):
        """Semantic issues don't block."""
        future = (TODAY + timedelta(days=10)).isoformat()
        draft, result = TransactionValidator().validate(_entry(date=future), today=TODAY)
        assert draft is not None
        assert result.is_valid
        assert result.issues[0].issue_type == "future_date"
        assert result.warnings

    def test_old_date_is_warning(self):
        draft, result = TransactionValidator().validate(_entry(date="2020-01-01"), today=TODAY)
        assert draft is not None
        assert result.issues[0].issue_type == "suspicious_date"

    def test_duplicate_warning(self, make_transaction):
        """Same date, amount, category and description: possible duplicate."""
        existing = make_transaction(
            "12000",
            type_=TransactionType.DEDUCTION,
            category=TransactionCategory.SECTION_80D,
            date=date(2024, 5, 10),
            description="health insurance PREMIUM",
        )
        draft, result = TransactionValidator([existing]).validate(_entry(), today=TODAY)
        assert draft is not None
        assert [i.issue_type for i in result.issues] == ["potential_duplicate"]

    def test_friendly_summary(self):
        _, result = TransactionValidator().validate(_entry(amount="-10"), today=TODAY)
        summary = get_user_friendly_summary(result)
        assert "amount" in summary


class TestProfileValidator:

    def test_missing_personal_info_warns(self):
        profile, result = ProfileValidator().validate({"user_type": "salaried"})
        assert profile is not None
        assert result.is_valid
        assert result.issues[0].field == "personal_info"

    def test_bad_pan(self):
        """PAN format errors are reported on the nested field."""
        profile, result = ProfileValidator().validate({
            "user_type": "salaried",
            "personal_info": {
                "first_name": "Asha",
                "last_name": "Rao",
                "email": "asha@example.com",
                "phone": "9876543210",
                "pan": "abcde1234f",
            },
        })
        assert profile is None
        assert "personal_info.pan" in result.errors_by_field()


class TestFileValidator:
    """Cheap checks before a document is sent to the extractor."""

    def test_valid_pdf(self):
        result = FileValidator().validate_file("form16_2024.pdf", 2 * MB, "application/pdf", "form16")
        assert result.is_valid
        assert result.warnings == []
        assert result.extension == ".pdf"

    def test_too_large(self):
        """Default limit is 10 MB."""
        result = FileValidator().validate_file("scan.pdf", 11 * MB, "application/pdf")
        assert not result.is_valid
        assert "exceeds maximum allowed size (10 MB)" in result.errors[0]

    def test_empty_file(self):
        result = FileValidator().validate_file("scan.pdf", 0, "application/pdf")
        assert "File is empty" in result.errors

    def test_disallowed_type(self):
        result = FileValidator().validate_file("notes.txt", 100, "text/plain")
        assert not result.is_valid

    @pytest.mark.parametrize("file_name", [
        "payload.exe",
        "invoice.pdf.exe",
        ".hidden.pdf",
        "../etc/passwd.pdf",
        "a<script>.pdf",
    ])
    def test_dangerous_names(self, file_name):
        """Executables, double extensions, hidden files, traversal, scripts."""
        result = FileValidator().validate_file(file_name, 100, "application/pdf")
        assert not result.is_valid

    def test_tar_gz_double_extension_allowed(self):
        """Known archive double extensions aren't suspicious."""
        from livetax.validation.files import security_errors
        assert security_errors("backup.tar.gz") == []

    def test_document_type_mismatch_is_warning(self):
        """A name that doesn't look like the chosen type only warns."""
        result = FileValidator().validate_file("scan.pdf", 100, "application/pdf", "form16")
        assert result.is_valid
        assert result.warnings

    def test_batch_rules(self):
        """Too many files and duplicate names are batch errors."""
        files = [("slip.pdf", 100, "application/pdf")] * 6
        result = FileValidator().validate_files(files)
        assert not result.is_valid
        assert any("Too many files" in e for e in result.global_errors)
        assert any("Duplicate files detected: slip.pdf" in e for e in result.global_errors)

    def test_batch_total_size(self):
        files = [
            ("a.pdf", 8 * MB, "application/pdf"),
            ("b.pdf", 8 * MB, "application/pdf"),
            ("c.pdf", 8 * MB, "application/pdf"),
        ]
        result = FileValidator().validate_files(files)
        assert any("Total file size" in e for e in result.global_errors)

    def test_empty_batch(self):
        result = FileValidator().validate_files([])
        assert result.global_errors == ["No files selected"]

    def test_format_errors(self):
        result = FileValidator().validate_files([("run.exe", 100, None)])
        text = format_validation_errors(result)
        assert text.startswith("File 1 (run.exe):")


class TestFileHelpers:

    @pytest.mark.parametrize("size,expected", [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1536, "1.5 KB"),
        (10 * MB, "10 MB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    def test_recommended_documents(self):
        """'both' users get salaried and business documents, once each."""
        documents = get_recommended_documents(UserType.BOTH)
        assert "form16" in documents
        assert "gst_return" in documents
        assert len(documents) == len(set(documents))
        assert get_recommended_documents(None) == [
            "bank_statement", "investment_proof", "medical_insurance", "aadhaar", "pan_card",
        ]
