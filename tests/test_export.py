"""Tests for CSV and JSON exports."""

import csv
import io
import json
from datetime import date, datetime, timezone

from livetax.calculations import compute_regime_comparison
from livetax.export import (
    CSV_HEADERS,
    build_tax_summary,
    tax_summary_export_name,
    transactions_export_name,
    transactions_to_csv,
)
from livetax.models.profile import PersonalInfo, TaxInfo, UserProfile
from livetax.models.tax import TaxSettings
from livetax.models.transaction import TransactionCategory, TransactionType


class TestTransactionsCsv:

    def test_rows_in_list_order(self, make_transaction):
        """Test one row per transaction with the receipt flag as Yes/No."""
        transactions = [
            make_transaction("85000.50", description="April salary", has_receipt=True),
            make_transaction(
                "1500",
                type_=TransactionType.EXPENSE,
                category=TransactionCategory.BUSINESS_EXPENSE,
                date=date(2024, 5, 2),
                description="Printer ink, black",
            ),
        ]

        rows = list(csv.reader(io.StringIO(transactions_to_csv(transactions))))

        assert rows[0] == CSV_HEADERS
        assert rows[1] == ["2024-04-15", "April salary", "85000.50", "Income", "Salary Income", "Yes"]
        # Commas in descriptions are quoted, not split
        assert rows[2] == ["2024-05-02", "Printer ink, black", "1500", "Expense", "Business Expense", "No"]

    def test_empty(self):
        assert transactions_to_csv([]) == ",".join(CSV_HEADERS) + "\n"


class TestTaxSummary:

    def test_contents(self, make_transaction):
        """User info, both regimes and the export time, camelCase at the top."""
        profile = UserProfile(
            personal_info=PersonalInfo(
                first_name="Asha",
                last_name="Rao",
                email="asha@example.com",
                phone="9876543210",
                pan="ABCDE1234F",
            ),
            tax_info=TaxInfo(assessment_year="2025-26"),
        )
        calculation = compute_regime_comparison(
            [make_transaction("1000000")], TaxSettings(include_projections=False)
        )
        exported_at = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)

        data = json.loads(build_tax_summary(profile, calculation, exported_at).to_json())

        assert data["userInfo"] == {
            "name": "Asha Rao",
            "pan": "ABCDE1234F",
            "assessmentYear": "2025-26",
        }
        assert data["taxCalculations"]["old_regime"]["tax_liability"] == 117000
        assert data["exportedAt"].startswith("2025-03-01T10:00:00")

    def test_without_profile_or_calculation(self):
        data = json.loads(build_tax_summary(None, None).to_json())
        assert data["userInfo"] == {"name": None, "pan": None, "assessmentYear": None}
        assert data["taxCalculations"] is None


class TestExportNames:

    def test_dated_names(self):
        assert transactions_export_name(date(2025, 3, 1)) == "transactions_2025-03-01.csv"
        assert tax_summary_export_name(date(2025, 3, 1)) == "tax_summary_2025-03-01.json"
