"""
Tests for the tax engine and deduction utilization.

Reference liabilities are worked out by hand from the FY 2023-24 slabs
with 4% cess, rounded half-up.
"""

import pytest
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from livetax.calculations import (
    compute_liability,
    compute_regime_comparison,
    compute_utilization,
    pre_cess_bracket_tax,
)
from livetax.models.tax import (
    SECTION_80C_LIMIT,
    TaxRegime,
    TaxSettings,
)
from livetax.models.transaction import (
    TransactionCategory,
    TransactionSource,
    TransactionType,
)


NO_PROJECTIONS = TaxSettings(include_projections=False)


class TestComputeLiability:
    """Tests for single-regime liability."""

    @pytest.mark.parametrize("taxable,regime,expected", [
        (0, TaxRegime.OLD, 0),
        (0, TaxRegime.NEW, 0),
        (250000, TaxRegime.OLD, 0),
        (500000, TaxRegime.OLD, 13000),
        (575000, TaxRegime.OLD, 28600),
        (1000000, TaxRegime.OLD, 117000),
        (750000, TaxRegime.NEW, 31200),
    ])
    def test_reference_values(self, taxable, regime, expected):
        """Test liabilities against hand-computed values."""
        assert compute_liability(Decimal(taxable), regime) == expected

    def test_negative_income_is_zero(self):
        """Negative taxable income is treated as 0."""
        assert compute_liability(Decimal("-5000"), TaxRegime.OLD) == 0

    @pytest.mark.parametrize("regime", list(TaxRegime))
    def test_non_decreasing(self, regime):
        """More income never means less tax."""
        previous = 0
        for taxable in range(0, 2_000_001, 25_000):
            liability = compute_liability(Decimal(taxable), regime)
            assert liability >= previous
            previous = liability

    @pytest.mark.parametrize("regime", [TaxRegime.OLD, TaxRegime.NEW])
    @pytest.mark.parametrize("taxable", [0, 300000, 575000, 612345, 1250000, 1800000])
    def test_cess_applied_to_bracket_tax(self, regime, taxable):
        """Liability is the bracket tax plus 4%, rounded half-up."""
        pre_cess = pre_cess_bracket_tax(Decimal(taxable), regime)
        liability = compute_liability(Decimal(taxable), regime)
        expected = int((pre_cess * Decimal("1.04")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        assert liability == expected
        assert liability >= pre_cess


class TestRegimeComparison:
    """Tests for compute_regime_comparison."""

    def test_salaried_scenario(self, make_transaction):
        """Income 8L, full 80C and 80D: old regime wins."""
        transactions = [
            make_transaction("800000"),
            make_transaction(
                "150000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80C,
                description="PPF",
            ),
            make_transaction(
                "25000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80D,
                description="Health insurance",
            ),
        ]

        calculation = compute_regime_comparison(transactions, NO_PROJECTIONS)

        assert calculation.old_regime.taxable_income == Decimal("575000")
        assert calculation.new_regime.taxable_income == Decimal("750000")
        assert calculation.old_regime.tax_liability == 28600
        assert calculation.new_regime.tax_liability == 31200
        assert calculation.recommendation.regime == TaxRegime.OLD
        assert calculation.recommendation.savings == 2600
        assert calculation.recommendation.reason == (
            "Old regime saves ₹2,600 due to deduction utilization"
        )

    def test_new_regime_wins_without_deductions(self, make_transaction):
        """With nothing to deduct the new regime is cheaper."""
        calculation = compute_regime_comparison(
            [make_transaction("1200000")], NO_PROJECTIONS
        )
        assert calculation.recommendation.regime == TaxRegime.NEW
        assert calculation.recommendation.savings == (
            calculation.old_regime.tax_liability - calculation.new_regime.tax_liability
        )
        assert calculation.recommendation.reason.startswith("New regime saves ₹")

    def test_tie_goes_to_old_regime(self):
        """No transactions: both liabilities are 0 and old is recommended."""
        calculation = compute_regime_comparison([], TaxSettings())
        assert calculation.old_regime.tax_liability == 0
        assert calculation.new_regime.tax_liability == 0
        assert calculation.recommendation.regime == TaxRegime.OLD
        assert calculation.recommendation.savings == 0

    def test_standard_deduction_applies_to_both(self, make_transaction):
        """Both regimes subtract the 50,000 standard deduction."""
        calculation = compute_regime_comparison(
            [make_transaction("40000")], NO_PROJECTIONS
        )
        assert calculation.old_regime.taxable_income == 0
        assert calculation.new_regime.taxable_income == 0

    def test_projections_annualize_monthly_average(self, make_transaction):
        """Two months of 50,000 project to 600,000."""
        transactions = [
            make_transaction("50000", date=date(2024, 4, 30)),
            make_transaction("50000", date=date(2024, 5, 31)),
        ]
        calculation = compute_regime_comparison(transactions, TaxSettings())
        assert calculation.old_regime.gross_income == Decimal("600000")
        assert calculation.new_regime.taxable_income == Decimal("550000")

    def test_projection_months_count_any_type(self, make_transaction):
        """A month with only an expense still counts towards the average."""
        transactions = [
            make_transaction("60000", date=date(2024, 4, 30)),
            make_transaction(
                "200",
                type_=TransactionType.EXPENSE,
                category=TransactionCategory.PROFESSIONAL_TAX,
                date=date(2024, 5, 31),
                description="Professional tax",
            ),
        ]
        calculation = compute_regime_comparison(transactions, TaxSettings())
        assert calculation.old_regime.gross_income == Decimal("360000")

    def _professional_tax(self, make_transaction, amount, source=TransactionSource.AI_EXTRACTED):
        return make_transaction(
            amount,
            type_=TransactionType.EXPENSE,
            category=TransactionCategory.PROFESSIONAL_TAX,
            description="Professional tax",
            source=source,
        )

    def test_professional_tax_annualized_for_extracted_data(self, make_transaction):
        """Projecting: one extracted month of PT is taken as monthly, capped at 2,500."""
        transactions = [
            make_transaction("50000"),
            self._professional_tax(make_transaction, "200"),
        ]
        calculation = compute_regime_comparison(transactions, TaxSettings())
        # 600,000 - 2,400 - 50,000
        assert calculation.old_regime.taxable_income == Decimal("547600")

        transactions[1] = self._professional_tax(make_transaction, "250")
        calculation = compute_regime_comparison(transactions, TaxSettings())
        assert calculation.old_regime.taxable_income == Decimal("547500")

    def test_extracted_professional_tax_raw_without_projections(self, make_transaction):
        """Projections off: extracted PT is used as entered."""
        transactions = [
            make_transaction("800000"),
            self._professional_tax(make_transaction, "200"),
        ]
        calculation = compute_regime_comparison(transactions, NO_PROJECTIONS)
        assert calculation.old_regime.taxable_income == Decimal("749800")

    def test_professional_tax_not_annualized_for_manual_data(self, make_transaction):
        """Manually entered PT is taken as entered, even when projecting."""
        transactions = [
            make_transaction("50000"),
            self._professional_tax(make_transaction, "200", source=TransactionSource.MANUAL),
        ]
        calculation = compute_regime_comparison(transactions, TaxSettings())
        assert calculation.old_regime.taxable_income == Decimal("549800")

        calculation = compute_regime_comparison(
            [make_transaction("800000"), transactions[1]], NO_PROJECTIONS
        )
        assert calculation.old_regime.taxable_income == Decimal("749800")

    def test_idempotent(self, make_transaction):
        """Same input, same output."""
        transactions = [
            make_transaction("900000"),
            make_transaction(
                "45000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80C,
                description="ELSS",
            ),
        ]
        first = compute_regime_comparison(transactions, TaxSettings())
        second = compute_regime_comparison(transactions, TaxSettings())
        assert first == second

    def test_recommended_regime_has_lower_liability(self, make_transaction):
        """The recommendation never picks the more expensive regime."""
        for income in ("300000", "700000", "1100000", "2500000"):
            calculation = compute_regime_comparison(
                [make_transaction(income)], NO_PROJECTIONS
            )
            chosen = calculation.for_regime(calculation.recommendation.regime)
            assert chosen.tax_liability == min(
                calculation.old_regime.tax_liability,
                calculation.new_regime.tax_liability,
            )
            assert calculation.recommendation.savings == abs(
                calculation.old_regime.tax_liability - calculation.new_regime.tax_liability
            )


class TestUtilization:
    """Tests for compute_utilization."""

    def test_full_sections(self, make_transaction):
        """Scenario: 80C and 80D fully used."""
        utilization = compute_utilization([
            make_transaction(
                "150000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80C,
            ),
            make_transaction(
                "25000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80D,
            ),
        ])
        assert utilization.section_80c.utilization == 100
        assert utilization.section_80d.utilization == 100
        assert utilization.hra.used == 0

    def test_partial_use(self, make_transaction):
        """Test percentage of the 80C limit."""
        utilization = compute_utilization([
            make_transaction(
                "45000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80C,
            ),
        ])
        assert utilization.section_80c.used == Decimal("45000")
        assert utilization.section_80c.utilization == pytest.approx(30.0)
        assert utilization.section_80c.remaining == Decimal("105000")

    def test_capped_at_limit(self, make_transaction):
        """Over-investing never shows more than the limit."""
        utilization = compute_utilization([
            make_transaction(
                "120000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80C,
            ),
            make_transaction(
                "90000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.SECTION_80C,
            ),
        ])
        assert utilization.section_80c.used == SECTION_80C_LIMIT
        assert utilization.section_80c.utilization == 100

    def test_hra_limit_is_configurable(self, make_transaction):
        """The HRA placeholder limit can be overridden."""
        utilization = compute_utilization(
            [make_transaction(
                "60000",
                type_=TransactionType.DEDUCTION,
                category=TransactionCategory.HRA,
            )],
            hra_limit=Decimal("120000"),
        )
        assert utilization.hra.limit == Decimal("120000")
        assert utilization.hra.utilization == pytest.approx(50.0)

    def test_empty(self):
        """No transactions, nothing used."""
        utilization = compute_utilization([])
        for section in (utilization.section_80c, utilization.section_80d, utilization.hra):
            assert section.used == 0
            assert section.utilization == 0
