"""
Ledger Queries

DESIGN DECISION: Query execution is DETERMINISTIC.
Filtering and totals are computed directly over the stored transactions.
The assistant never answers "how much did I earn" on its own; whatever
it is shown comes from here or from the tax engine.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from livetax.models.ledger import DateRange, LedgerSummary, TransactionFilter
from livetax.models.transaction import (
    Transaction,
    TransactionCategory,
    TransactionType,
)


DATE_RANGE_DAYS = {
    DateRange.LAST_30_DAYS: 30,
    DateRange.LAST_90_DAYS: 90,
}

# Rough marginal rate used for the per-transaction tax impact hint
IMPACT_TAX_RATE = Decimal("0.3")


def filter_transactions(
    transactions: list[Transaction],
    filters: TransactionFilter,
    today: Optional[dt.date] = None,
) -> list[Transaction]:
    """Return the transactions matching every criterion, in original order."""
    today = today or dt.date.today()
    search = filters.search_term.strip().lower()

    cutoff = None
    if filters.date_range in DATE_RANGE_DAYS:
        cutoff = today - dt.timedelta(days=DATE_RANGE_DAYS[filters.date_range])

    results = []
    for t in transactions:
        if search and search not in t.description.lower():
            continue
        if filters.type is not None and t.type != filters.type:
            continue
        if filters.category is not None and t.category != filters.category:
            continue
        if filters.has_receipt is not None and t.has_receipt != filters.has_receipt:
            continue
        if cutoff is not None and t.date < cutoff:
            continue
        results.append(t)
    return results


def summarize(transactions: list[Transaction]) -> LedgerSummary:
    """Totals by family. Tax already paid is reported apart from expenses."""
    income = deductions = expenses = tax_paid = Decimal("0")

    for t in transactions:
        if t.category == TransactionCategory.TAX_PAID:
            tax_paid += t.amount
        elif t.type == TransactionType.INCOME:
            income += t.amount
        elif t.type == TransactionType.DEDUCTION:
            deductions += t.amount
        elif t.type == TransactionType.EXPENSE:
            expenses += t.amount

    return LedgerSummary(
        transaction_count=len(transactions),
        total_income=income,
        total_deductions=deductions,
        total_expenses=expenses,
        tax_paid=tax_paid,
    )


def estimate_tax_impact(transaction: Transaction) -> Decimal:
    """
    Approximate effect of one transaction on tax at a flat 30%.

    Positive for income, negative for deductions, zero for expenses.
    """
    if transaction.type == TransactionType.INCOME:
        return transaction.amount * IMPACT_TAX_RATE
    if transaction.type == TransactionType.DEDUCTION:
        return -(transaction.amount * IMPACT_TAX_RATE)
    return Decimal("0")
