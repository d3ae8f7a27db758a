"""
Insight Generator

Rule-based advice derived from the latest computed state.

DESIGN DECISION: Insights are DETERMINISTIC.
No LLM is involved here; every insight can be traced to a single rule
over the transactions, the deduction utilization and the regime
recommendation. Passing `today` makes the date-based rule reproducible.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional

from livetax.models.insight import Insight, InsightPriority, InsightType
from livetax.models.tax import DeductionUtilization, TaxCalculation, TaxRegime
from livetax.models.transaction import Transaction, TransactionCategory


# Assumes the user sits in the 30% bracket
ASSUMED_MARGINAL_RATE = Decimal("0.3")
MEDICAL_RENEWAL_DAYS = 300
STRONG_80C_UTILIZATION = 80


def _inr(amount: Decimal) -> str:
    return f"₹{amount.quantize(Decimal('1')):,}"


def _section_80c_insight(utilization: DeductionUtilization) -> Optional[Insight]:
    section = utilization.section_80c
    if section.utilization >= 100:
        return None

    remaining = section.remaining
    potential_saving = remaining * ASSUMED_MARGINAL_RATE
    return Insight(
        type=InsightType.WARNING,
        title="80C Deduction Optimization",
        message=(
            f"You have {_inr(remaining)} remaining in your 80C limit. "
            f"Consider investing in ELSS before March to save an extra "
            f"{_inr(potential_saving)}."
        ),
        action="Show Options",
        priority=InsightPriority.HIGH,
    )


def _medical_renewal_insight(
    transactions: list[Transaction],
    utilization: DeductionUtilization,
    today: dt.date,
) -> Optional[Insight]:
    medical = [t for t in transactions if t.category == TransactionCategory.SECTION_80D]
    if not medical:
        return None

    last_payment = max(t.date for t in medical)
    if (today - last_payment).days < MEDICAL_RENEWAL_DAYS:
        return None

    return Insight(
        type=InsightType.INFO,
        title="Medical Insurance Renewal",
        message=(
            "Your medical insurance premium is likely due soon. Paying it "
            "before the due date will help maintain your "
            f"{_inr(utilization.section_80d.used)} deduction."
        ),
        action="Set Reminder",
        priority=InsightPriority.MEDIUM,
    )


def _good_planning_insight(
    utilization: DeductionUtilization,
    calculation: Optional[TaxCalculation],
) -> Optional[Insight]:
    if calculation is None:
        return None
    if calculation.recommendation.regime != TaxRegime.OLD:
        return None
    if utilization.section_80c.utilization <= STRONG_80C_UTILIZATION:
        return None

    return Insight(
        type=InsightType.SUCCESS,
        title="Excellent Tax Planning!",
        message=(
            "Great job! Your tax planning is on track. You're utilizing "
            "deductions efficiently and staying within the optimal regime."
        ),
        priority=InsightPriority.LOW,
    )


def generate_insights(
    transactions: list[Transaction],
    utilization: DeductionUtilization,
    calculation: Optional[TaxCalculation],
    today: Optional[dt.date] = None,
    existing_titles: Iterable[str] = (),
) -> list[Insight]:
    """
    Evaluate every rule and return the new insights.

    Insights whose title is already in existing_titles (or already
    produced in this call) are suppressed.
    """
    today = today or dt.date.today()

    candidates = [
        _section_80c_insight(utilization),
        _medical_renewal_insight(transactions, utilization, today),
        _good_planning_insight(utilization, calculation),
    ]

    seen = set(existing_titles)
    insights = []
    for insight in candidates:
        if insight is None or insight.title in seen:
            continue
        seen.add(insight.title)
        insights.append(insight)

    return insights
