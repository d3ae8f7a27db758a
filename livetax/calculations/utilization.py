"""
Deduction Utilization Tracker

How much of each capped deduction section the user has already used.
Pure function of the transaction list; recomputed on every mutation.
"""

from decimal import Decimal

from livetax.models.tax import (
    HRA_DEDUCTION_LIMIT,
    SECTION_80C_LIMIT,
    SECTION_80D_LIMIT,
    DeductionUtilization,
    SectionUtilization,
)
from livetax.models.transaction import (
    Transaction,
    TransactionCategory,
    TransactionType,
)


def _section(
    transactions: list[Transaction],
    category: TransactionCategory,
    limit: Decimal,
) -> SectionUtilization:
    total = sum(
        (
            t.amount for t in transactions
            if t.type == TransactionType.DEDUCTION and t.category == category
        ),
        Decimal("0"),
    )
    percent = min(total / limit * 100, Decimal("100"))
    return SectionUtilization(
        used=min(total, limit),
        limit=limit,
        utilization=float(percent),
    )


def compute_utilization(
    transactions: list[Transaction],
    hra_limit: Decimal = HRA_DEDUCTION_LIMIT,
) -> DeductionUtilization:
    """
    Per-section used amount and percentage of limit.

    Both values are capped: used never exceeds the limit and
    utilization never exceeds 100.
    """
    return DeductionUtilization(
        section_80c=_section(transactions, TransactionCategory.SECTION_80C, SECTION_80C_LIMIT),
        section_80d=_section(transactions, TransactionCategory.SECTION_80D, SECTION_80D_LIMIT),
        hra=_section(transactions, TransactionCategory.HRA, Decimal(hra_limit)),
    )
