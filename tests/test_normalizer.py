"""
Tests for the extraction normalizer.

The extractor's labels are not trusted; these tests pin down which
keyword rule wins and that nothing the model returns can break
normalization.
"""

import pytest
from datetime import date
from decimal import Decimal

from livetax.extraction import (
    categorize_by_keywords,
    normalize_candidate,
    normalize_candidates,
)
from livetax.models.extraction import ExtractedDocumentData
from livetax.models.transaction import (
    TransactionCategory,
    TransactionSource,
    TransactionType,
    category_belongs_to,
)


TODAY = date(2024, 6, 1)


class TestKeywordRules:
    """Tests for categorize_by_keywords."""

    @pytest.mark.parametrize("description,expected", [
        ("Basic Pay", (TransactionType.INCOME, TransactionCategory.SALARY_INCOME)),
        ("HRA", (TransactionType.INCOME, TransactionCategory.SALARY_INCOME)),
        ("House Rent Allowance", (TransactionType.INCOME, TransactionCategory.SALARY_INCOME)),
        ("Conveyance Allowance", (TransactionType.INCOME, TransactionCategory.SALARY_INCOME)),
        ("Performance Bonus", (TransactionType.INCOME, TransactionCategory.SALARY_INCOME)),
        ("Employee Provident Fund", (TransactionType.DEDUCTION, TransactionCategory.SECTION_80C)),
        ("EPF Contribution", (TransactionType.DEDUCTION, TransactionCategory.SECTION_80C)),
        ("Medical Insurance Premium", (TransactionType.DEDUCTION, TransactionCategory.SECTION_80D)),
        ("Professional Tax", (TransactionType.EXPENSE, TransactionCategory.PROFESSIONAL_TAX)),
        ("TDS", (TransactionType.EXPENSE, TransactionCategory.TAX_PAID)),
        ("Income Tax", (TransactionType.EXPENSE, TransactionCategory.TAX_PAID)),
        ("ESI", (TransactionType.EXPENSE, TransactionCategory.PROFESSIONAL_TAX)),
        ("Other Deductions", (TransactionType.EXPENSE, TransactionCategory.OTHER_EXPENSE)),
    ])
    def test_rules(self, description, expected):
        """Test each rule on a typical payslip line."""
        assert categorize_by_keywords(description) == expected

    def test_no_match(self):
        """Test that unrelated text matches nothing."""
        assert categorize_by_keywords("Office furniture") is None

    def test_medical_needs_qualifier(self):
        """'medical' alone is not enough for 80D."""
        assert categorize_by_keywords("Medical checkup") is None

    def test_earlier_rule_wins(self):
        """Salary is checked before TDS."""
        assert categorize_by_keywords("Salary TDS adjustment") == (
            TransactionType.INCOME,
            TransactionCategory.SALARY_INCOME,
        )

    def test_hra_overrides_model_label(self):
        """HRA reported as a deduction is corrected to income."""
        candidate = normalize_candidate(
            {"description": "HRA", "type": "Deduction", "category": "HRA", "amount": 20000},
            today=TODAY,
        )
        assert candidate.type == TransactionType.INCOME
        assert candidate.category == TransactionCategory.SALARY_INCOME


class TestNormalizeCandidate:
    """Tests for normalize_candidate."""

    def test_well_formed_entry(self):
        """Test a clean entry keeps its values."""
        candidate = normalize_candidate(
            {
                "description": "ELSS investment",
                "type": "Deduction",
                "category": "80C Deduction",
                "amount": 12500,
                "date": "2024-03-15",
            },
            document_id="elss.pdf",
            today=TODAY,
        )
        assert candidate.type == TransactionType.DEDUCTION
        assert candidate.category == TransactionCategory.SECTION_80C
        assert candidate.amount == Decimal("12500.00")
        assert candidate.date == date(2024, 3, 15)
        assert candidate.document_id == "elss.pdf"
        assert candidate.source == TransactionSource.AI_EXTRACTED
        assert candidate.has_receipt is True

    def test_out_of_family_category_replaced(self):
        """An expense claiming an income category gets the expense default."""
        candidate = normalize_candidate(
            {"description": "Office chair", "type": "Expense", "category": "Salary Income", "amount": 4000},
            today=TODAY,
        )
        assert candidate.type == TransactionType.EXPENSE
        assert candidate.category == TransactionCategory.BUSINESS_EXPENSE

    def test_unknown_type_defaults_to_income(self):
        """Test unknown type falls back to Income / Salary Income."""
        candidate = normalize_candidate(
            {"description": "Something", "type": "Refund", "amount": 100},
            today=TODAY,
        )
        assert candidate.type == TransactionType.INCOME
        assert candidate.category == TransactionCategory.SALARY_INCOME

    def test_category_alias(self):
        """Short category names are understood."""
        candidate = normalize_candidate(
            {"description": "Health cover", "type": "deduction", "category": "80d", "amount": 9000},
            today=TODAY,
        )
        assert candidate.category == TransactionCategory.SECTION_80D

    @pytest.mark.parametrize("amount,expected", [
        ("-1500", Decimal("1500.00")),
        ("₹1,25,000", Decimal("125000.00")),
        ("12.346", Decimal("12.35")),
        ("abc", Decimal("0")),
        (None, Decimal("0")),
        (True, Decimal("0")),
        ("NaN", Decimal("0")),
        ("Infinity", Decimal("0")),
    ])
    def test_amount_repair(self, amount, expected):
        """Amounts become non-negative and finite."""
        candidate = normalize_candidate(
            {"description": "Line item", "amount": amount},
            today=TODAY,
        )
        assert candidate.amount == expected

    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-31T00:00:00Z", date(2024, 3, 31)),
        ("31/03/2024", date(2024, 3, 31)),
        ("31-03-2024", date(2024, 3, 31)),
        ("31 Mar 2024", date(2024, 3, 31)),
        ("not a date", TODAY),
        (None, TODAY),
    ])
    def test_date_repair(self, raw, expected):
        """Unreadable dates fall back to today."""
        candidate = normalize_candidate(
            {"description": "Line item", "amount": 1, "date": raw},
            today=TODAY,
        )
        assert candidate.date == expected

    def test_missing_description(self):
        """A blank description gets a placeholder."""
        candidate = normalize_candidate({"description": "   ", "amount": 10}, today=TODAY)
        assert candidate.description == "Extracted transaction"

    def test_long_description_truncated(self):
        """Test description is cut to 200 characters."""
        candidate = normalize_candidate({"description": "x" * 500, "amount": 10}, today=TODAY)
        assert len(candidate.description) == 200

    def test_empty_entry(self):
        """Even an empty mapping produces a consistent candidate."""
        candidate = normalize_candidate({}, today=TODAY)
        assert category_belongs_to(candidate.category, candidate.type)
        assert candidate.amount == 0
        assert candidate.date == TODAY


class TestNormalizeCandidates:

    def test_skips_non_mappings(self):
        """Strings and numbers in the list are dropped."""
        candidates = normalize_candidates(
            [{"description": "Basic Pay", "amount": 50000}, "garbage", 42, None],
            today=TODAY,
        )
        assert len(candidates) == 1

    def test_accepts_models(self):
        """Pydantic models are read through model_dump."""
        payload = ExtractedDocumentData(confidence=0.9)
        candidates = normalize_candidates([payload], today=TODAY)
        assert len(candidates) == 1
        assert candidates[0].description == "Extracted transaction"

    def test_every_candidate_consistent(self):
        """No matter the labels, every output pairing is valid."""
        raws = [
            {"description": d, "type": t, "category": c, "amount": 1}
            for d in ("Basic Pay", "PF", "Random", "Office rent")
            for t in ("Income", "Deduction", "Expense", "bogus", None)
            for c in ("Salary Income", "80C Deduction", "Business Expense", "bogus", None)
        ]
        for candidate in normalize_candidates(raws, today=TODAY):
            assert category_belongs_to(candidate.category, candidate.type)
            assert candidate.amount >= 0
