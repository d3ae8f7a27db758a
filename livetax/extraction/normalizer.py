"""
Extraction Normalizer

Repairs raw extractor output into PendingTransaction candidates.

DESIGN DECISION: The extractor is an untrusted oracle.
Its type/category labels are frequently wrong for payslip lines
(HRA reported as a deduction, PF reported as income, etc.), so a small
set of ordered keyword rules on the description overrides whatever the
model said. Only when no rule fires do we fall back to the declared
labels, and even then an out-of-family category is replaced with the
family default.

Keyword matching is deliberately simple substring matching:
1. Transparent to the user
2. Easy to debug
3. The user reviews every candidate before it is recorded anyway

IMPORTANT: normalize_candidate NEVER raises. Anything unreadable is
replaced with a safe default and the user fixes it during review.
"""

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import BaseModel

from livetax.models.transaction import (
    DEFAULT_CATEGORY,
    PendingTransaction,
    TransactionCategory,
    TransactionSource,
    TransactionType,
    category_belongs_to,
)


DEFAULT_DESCRIPTION = "Extracted transaction"
MAX_DESCRIPTION_LENGTH = 200

DATE_FORMATS = ["%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d", "%d %b %Y", "%d %B %Y"]


# =============================================================================
# KEYWORD RULES
# =============================================================================

# Evaluated in order; the first matching rule wins.
KEYWORD_RULES: list[tuple[tuple[str, ...], TransactionType, TransactionCategory]] = [
    # Salary components
    (("basic pay", "salary"), TransactionType.INCOME, TransactionCategory.SALARY_INCOME),
    # HRA is part of gross salary; the exemption is claimed separately
    (("hra", "house rent"), TransactionType.INCOME, TransactionCategory.SALARY_INCOME),
    (("allowance", "overtime", "bonus"), TransactionType.INCOME, TransactionCategory.SALARY_INCOME),
    # Deductions from salary
    (("provident fund", "pf", "epf"), TransactionType.DEDUCTION, TransactionCategory.SECTION_80C),
]

MEDICAL_KEYWORD = "medical"
MEDICAL_QUALIFIERS = ("insurance", "premium")

TRAILING_RULES: list[tuple[tuple[str, ...], TransactionType, TransactionCategory]] = [
    (("professional tax", "pt"), TransactionType.EXPENSE, TransactionCategory.PROFESSIONAL_TAX),
    (("tds", "income tax"), TransactionType.EXPENSE, TransactionCategory.TAX_PAID),
    (("esi", "employee state insurance"), TransactionType.EXPENSE, TransactionCategory.PROFESSIONAL_TAX),
    (("other deductions",), TransactionType.EXPENSE, TransactionCategory.OTHER_EXPENSE),
]

# Short names the extractor tends to use instead of the category value
CATEGORY_ALIASES: dict[str, TransactionCategory] = {
    "salary": TransactionCategory.SALARY_INCOME,
    "80c": TransactionCategory.SECTION_80C,
    "section 80c": TransactionCategory.SECTION_80C,
    "80d": TransactionCategory.SECTION_80D,
    "section 80d": TransactionCategory.SECTION_80D,
    "medical": TransactionCategory.SECTION_80D,
    "house rent allowance": TransactionCategory.HRA,
    "tds": TransactionCategory.TAX_PAID,
    "tax paid": TransactionCategory.TAX_PAID,
    "pt": TransactionCategory.PROFESSIONAL_TAX,
}


def categorize_by_keywords(
    description: str,
) -> Optional[tuple[TransactionType, TransactionCategory]]:
    """
    Apply the keyword rules to a description.

    Returns (type, category) for the first matching rule, or None.
    """
    text = description.lower()

    for keywords, type_, category in KEYWORD_RULES:
        if any(kw in text for kw in keywords):
            return type_, category

    if MEDICAL_KEYWORD in text and any(q in text for q in MEDICAL_QUALIFIERS):
        return TransactionType.DEDUCTION, TransactionCategory.SECTION_80D

    for keywords, type_, category in TRAILING_RULES:
        if any(kw in text for kw in keywords):
            return type_, category

    return None


# =============================================================================
# LENIENT FIELD PARSING
# =============================================================================

def _parse_type(value: Any) -> TransactionType:
    """Declared type by value or name, case-insensitive. Defaults to Income."""
    if isinstance(value, TransactionType):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        for member in TransactionType:
            if key in (member.value.lower(), member.name.lower()):
                return member
    return TransactionType.INCOME


def _parse_category(value: Any) -> Optional[TransactionCategory]:
    """Declared category by value, name or short alias. None if unknown."""
    if isinstance(value, TransactionCategory):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    for member in TransactionCategory:
        if key in (member.value.lower(), member.name.lower()):
            return member
    return CATEGORY_ALIASES.get(key)


def _safe_amount(value: Any) -> Decimal:
    """Absolute amount rounded to paise; 0 when unreadable."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        if isinstance(value, str):
            value = value.replace(",", "").replace("₹", "").strip()
        amount = abs(Decimal(str(value))).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


def _safe_date(value: Any) -> Optional[dt.date]:
    """Safely convert a value to date."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        # ISO timestamps like 2024-03-31T00:00:00Z
        if len(text) > 10 and text[4:5] == "-" and text[10:11] in ("T", " "):
            text = text[:10]
        for fmt in DATE_FORMATS:
            try:
                return dt.datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    return None


def _safe_description(value: Any) -> str:
    if value is None:
        return DEFAULT_DESCRIPTION
    text = str(value).strip()[:MAX_DESCRIPTION_LENGTH].strip()
    return text or DEFAULT_DESCRIPTION


def _optional_text(value: Any, max_length: int) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text[:max_length] or None


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize_candidate(
    raw: Union[Mapping[str, Any], BaseModel],
    *,
    document_id: Optional[str] = None,
    today: Optional[dt.date] = None,
) -> PendingTransaction:
    """
    Turn one raw extracted transaction into a consistent candidate.

    The result always has a valid type/category pair, a non-negative
    amount, a date and a non-empty description. It is marked as
    extracted from a document with a receipt.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()

    description = _safe_description(raw.get("description"))

    matched = categorize_by_keywords(description)
    if matched is not None:
        type_, category = matched
    else:
        type_ = _parse_type(raw.get("type"))
        category = _parse_category(raw.get("category"))
        if category is None or not category_belongs_to(category, type_):
            category = DEFAULT_CATEGORY[type_]

    return PendingTransaction(
        date=_safe_date(raw.get("date")) or today or dt.date.today(),
        description=description,
        amount=_safe_amount(raw.get("amount")),
        type=type_,
        category=category,
        has_receipt=True,
        source=TransactionSource.AI_EXTRACTED,
        document_id=_optional_text(document_id, 255),
        notes=_optional_text(raw.get("notes"), 500),
    )


def normalize_candidates(
    raws: Iterable[Any],
    *,
    document_id: Optional[str] = None,
    today: Optional[dt.date] = None,
) -> list[PendingTransaction]:
    """Normalize a list of raw entries, skipping anything that isn't a mapping."""
    return [
        normalize_candidate(raw, document_id=document_id, today=today)
        for raw in raws
        if isinstance(raw, (Mapping, BaseModel))
    ]
