"""
Tax Computation Engine

DESIGN DECISION: Computation is DETERMINISTIC and PURE.
Given the same transactions and settings it always produces the same
TaxCalculation. Nothing here touches storage, the network or the clock,
so the application state can call it after every mutation and simply
replace whatever it held before.

All money arithmetic is done in Decimal. Liabilities are rounded
half-up to whole rupees only at the very end (after cess).
"""

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from livetax.models.tax import (
    CESS_RATE,
    PROFESSIONAL_TAX_CAP,
    STANDARD_DEDUCTION,
    TAX_SLABS,
    Recommendation,
    RegimeResult,
    TaxCalculation,
    TaxRegime,
    TaxSettings,
)
from livetax.models.transaction import (
    Transaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12


# =============================================================================
# SLAB ARITHMETIC
# =============================================================================

def pre_cess_bracket_tax(taxable_income: Decimal, regime: TaxRegime) -> Decimal:
    """
    Progressive bracket tax before cess.

    Walks the regime's slabs in ascending order, taxing the portion of
    income that falls inside each one. Negative income is treated as 0.
    """
    remaining = max(Decimal(taxable_income), ZERO)
    tax = ZERO

    for slab in TAX_SLABS[regime]:
        if remaining <= 0:
            break
        width = slab.width
        portion = remaining if width is None else min(remaining, width)
        tax += portion * slab.rate / HUNDRED
        remaining -= portion

    return tax


def compute_liability(taxable_income: Decimal, regime: TaxRegime) -> int:
    """
    Total tax payable on a taxable income under one regime.

    Bracket tax plus 4% cess, rounded half-up to a whole unit.
    Total over its domain: never raises, never negative.
    """
    subtotal = pre_cess_bracket_tax(taxable_income, regime)
    with_cess = subtotal * (1 + CESS_RATE)
    return int(with_cess.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# REGIME COMPARISON
# =============================================================================

def _sum_amounts(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions), ZERO)


def _annualized_totals(transactions: list[Transaction]) -> tuple[Decimal, Decimal]:
    """
    Project income and deductions to a full year.

    Averages over the calendar months that contain at least one
    transaction of any type, then multiplies by 12.
    """
    monthly: dict[str, dict[str, Decimal]] = defaultdict(
        lambda: {"income": ZERO, "deductions": ZERO}
    )
    for t in transactions:
        bucket = monthly[t.date.strftime("%Y-%m")]
        if t.type == TransactionType.INCOME:
            bucket["income"] += t.amount
        elif t.type == TransactionType.DEDUCTION:
            bucket["deductions"] += t.amount

    month_count = len(monthly)
    income = sum((m["income"] for m in monthly.values()), ZERO)
    deductions = sum((m["deductions"] for m in monthly.values()), ZERO)

    return (
        income / month_count * MONTHS_PER_YEAR,
        deductions / month_count * MONTHS_PER_YEAR,
    )


def _effective_rate(liability: int, gross_income: Decimal) -> float:
    if gross_income <= 0:
        return 0.0
    return float(Decimal(liability) / gross_income * HUNDRED)


def _format_inr(amount: int) -> str:
    return f"₹{amount:,}"


def compute_regime_comparison(
    transactions: list[Transaction],
    settings: TaxSettings,
) -> TaxCalculation:
    """
    Compute liability under both regimes and recommend one.

    Steps:
    1. Sum Income and Deduction amounts (optionally annualized)
    2. Work out professional tax (annualized when projecting and any
       transaction came from a document, since extracted slips are
       usually monthly)
    3. Old regime subtracts deductions, capped professional tax and the
       standard deduction; new regime only the standard deduction
    4. Lower liability wins; ties go to the old regime
    """
    gross_income = _sum_amounts(t for t in transactions if t.type == TransactionType.INCOME)
    total_deductions = _sum_amounts(t for t in transactions if t.type == TransactionType.DEDUCTION)

    if settings.include_projections and transactions:
        gross_income, total_deductions = _annualized_totals(transactions)

    # Heuristic: assumes extracted professional tax is a monthly figure
    professional_tax = _sum_amounts(
        t for t in transactions if t.category == TransactionCategory.PROFESSIONAL_TAX
    )
    if settings.include_projections and any(
        t.source == TransactionSource.AI_EXTRACTED for t in transactions
    ):
        professional_tax *= MONTHS_PER_YEAR
    professional_tax = min(professional_tax, PROFESSIONAL_TAX_CAP)

    old_taxable = max(ZERO, gross_income - total_deductions - professional_tax - STANDARD_DEDUCTION)
    new_taxable = max(ZERO, gross_income - STANDARD_DEDUCTION)

    old_tax = compute_liability(old_taxable, TaxRegime.OLD)
    new_tax = compute_liability(new_taxable, TaxRegime.NEW)

    old_result = RegimeResult(
        gross_income=gross_income,
        total_deductions=total_deductions + STANDARD_DEDUCTION + professional_tax,
        taxable_income=old_taxable,
        tax_liability=old_tax,
        effective_rate=_effective_rate(old_tax, gross_income),
    )
    new_result = RegimeResult(
        gross_income=gross_income,
        total_deductions=STANDARD_DEDUCTION,
        taxable_income=new_taxable,
        tax_liability=new_tax,
        effective_rate=_effective_rate(new_tax, gross_income),
    )

    savings = abs(old_tax - new_tax)
    if old_tax <= new_tax:
        recommendation = Recommendation(
            regime=TaxRegime.OLD,
            savings=savings,
            reason=f"Old regime saves {_format_inr(savings)} due to deduction utilization",
        )
    else:
        recommendation = Recommendation(
            regime=TaxRegime.NEW,
            savings=savings,
            reason=f"New regime saves {_format_inr(savings)} with simplified tax structure",
        )

    return TaxCalculation(
        old_regime=old_result,
        new_regime=new_result,
        recommendation=recommendation,
    )
