"""
Ledger Query Models

Filters and totals for browsing the permanent transaction list.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from livetax.models.transaction import TransactionCategory, TransactionType


class DateRange(str, Enum):
    ALL = "all"
    LAST_30_DAYS = "last30"
    LAST_90_DAYS = "last90"


class TransactionFilter(BaseModel):
    """
    Criteria for narrowing the ledger.

    None (or ALL) on any criterion means "don't filter on this".
    """

    search_term: str = Field(default="", max_length=200)
    type: Optional[TransactionType] = None
    category: Optional[TransactionCategory] = None
    date_range: DateRange = DateRange.ALL
    has_receipt: Optional[bool] = None


class LedgerSummary(BaseModel):
    """Totals over a (possibly filtered) set of transactions."""

    transaction_count: int = Field(default=0, ge=0)
    total_income: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_expenses: Decimal = Field(
        default=Decimal("0"),
        description="Expenses excluding tax already paid"
    )
    tax_paid: Decimal = Decimal("0")
