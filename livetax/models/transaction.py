"""
Core Transaction Models for LiveTax

These models define the strict schemas for every financial fact the
system records. They are designed to:
1. Enforce type safety at runtime
2. Provide clear per-field validation error messages
3. Be serializable for persistence and export
4. Keep the category/type pairing consistent

DESIGN DECISION: Three shapes of the same fact exist.
- PendingTransaction: AI-proposed, lenient, editable by the user
- TransactionDraft: user-approved input, strictly validated
- Transaction: permanent record with identity and timestamps
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


MAX_TRANSACTION_AMOUNT = Decimal("10000000")


def utcnow() -> dt.datetime:
    """Timezone-aware current UTC time."""
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Top-level family of a transaction."""
    INCOME = "Income"
    DEDUCTION = "Deduction"
    EXPENSE = "Expense"


class TransactionCategory(str, Enum):
    """
    Supported transaction categories.

    Each category belongs to exactly one TransactionType family.
    See CATEGORY_FAMILIES.
    """
    # Income
    SALARY_INCOME = "Salary Income"
    BUSINESS_INCOME = "Business Income"
    CAPITAL_GAINS = "Capital Gains"
    OTHER_INCOME = "Other Income"

    # Deduction
    SECTION_80C = "80C Deduction"
    SECTION_80D = "80D Medical"
    HRA = "HRA"

    # Expense
    BUSINESS_EXPENSE = "Business Expense"
    PROFESSIONAL_TAX = "Professional Tax"
    TAX_PAID = "Tax Paid (TDS)"
    OTHER_EXPENSE = "Other Expense"


class TransactionSource(str, Enum):
    """Where a transaction came from."""
    MANUAL = "manual"
    AI_EXTRACTED = "ai_extracted"


CATEGORY_FAMILIES: dict[TransactionType, frozenset[TransactionCategory]] = {
    TransactionType.INCOME: frozenset({
        TransactionCategory.SALARY_INCOME,
        TransactionCategory.BUSINESS_INCOME,
        TransactionCategory.CAPITAL_GAINS,
        TransactionCategory.OTHER_INCOME,
    }),
    TransactionType.DEDUCTION: frozenset({
        TransactionCategory.SECTION_80C,
        TransactionCategory.SECTION_80D,
        TransactionCategory.HRA,
    }),
    TransactionType.EXPENSE: frozenset({
        TransactionCategory.BUSINESS_EXPENSE,
        TransactionCategory.PROFESSIONAL_TAX,
        TransactionCategory.TAX_PAID,
        TransactionCategory.OTHER_EXPENSE,
    }),
}

DEFAULT_CATEGORY: dict[TransactionType, TransactionCategory] = {
    TransactionType.INCOME: TransactionCategory.SALARY_INCOME,
    TransactionType.DEDUCTION: TransactionCategory.SECTION_80C,
    TransactionType.EXPENSE: TransactionCategory.BUSINESS_EXPENSE,
}


def category_belongs_to(category: TransactionCategory, type_: TransactionType) -> bool:
    """Check whether a category is valid for the given transaction type."""
    return category in CATEGORY_FAMILIES[type_]


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction about to become permanent.

    This is the input shape for adding a transaction, whether it was
    typed in by the user or promoted from a pending AI candidate.
    Manual data is NEVER coerced: anything invalid is rejected.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date = Field(
        ...,
        description="Date of the transaction"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Free-text description"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_TRANSACTION_AMOUNT,
        decimal_places=2,
        description="Amount in INR"
    )
    type: TransactionType
    category: TransactionCategory
    has_receipt: bool = False
    source: Optional[TransactionSource] = Field(
        default=TransactionSource.MANUAL,
        description="manual or ai_extracted"
    )
    document_id: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Name of the document this was extracted from"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    @model_validator(mode='after')
    def validate_category_family(self):
        """Category must belong to the type's family."""
        if not category_belongs_to(self.category, self.type):
            raise ValueError(
                f"Category '{self.category.value}' is not valid for "
                f"type '{self.type.value}'"
            )
        return self


class Transaction(TransactionDraft):
    """
    A permanent transaction record.

    CRITICAL: The id is assigned once at creation and never changes.
    """

    id: UUID = Field(
        default_factory=uuid4,
        frozen=True,
        description="Unique transaction ID"
    )
    created_at: dt.datetime = Field(
        default_factory=utcnow,
        description="When the transaction was recorded"
    )
    updated_at: dt.datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp"
    )

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> "Transaction":
        """Assign identity and timestamps to an approved draft."""
        now = utcnow()
        return cls(**draft.model_dump(), created_at=now, updated_at=now)

    def to_draft(self) -> TransactionDraft:
        return TransactionDraft(
            **self.model_dump(exclude={"id", "created_at", "updated_at"})
        )


class PendingTransaction(BaseModel):
    """
    An AI-extracted candidate awaiting user review.

    CRITICAL: This is PROPOSED data, NOT verified.
    It becomes a Transaction only through explicit confirmation.

    The model is lenient on purpose: the amount may be zero (the extractor
    could not read it) and type/category may be edited one at a time, so
    the family pairing is only enforced when the candidate is confirmed.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    date: dt.date
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in INR (0 when unreadable)"
    )
    type: TransactionType
    category: TransactionCategory
    has_receipt: bool = True
    source: TransactionSource = TransactionSource.AI_EXTRACTED
    document_id: Optional[str] = Field(
        default=None,
        max_length=255,
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    @property
    def is_consistent(self) -> bool:
        """Does the current type/category pairing hold?"""
        return category_belongs_to(self.category, self.type)

    def to_draft(self) -> TransactionDraft:
        """
        Promote to a draft.

        Raises pydantic.ValidationError if the candidate (possibly edited)
        doesn't meet the strict rules.
        """
        return TransactionDraft.model_validate(self.model_dump())
