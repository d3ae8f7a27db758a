"""
Tax Domain Models and Constants

Static rules (slabs, deduction limits) and the derived snapshots the
computation engine produces.

DESIGN DECISION: Derived snapshots (TaxCalculation, DeductionUtilization)
are never persisted. They are rebuilt from the transaction list every time
it changes, so they can't go stale.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# CONSTANTS
# =============================================================================

SECTION_80C_LIMIT = Decimal("150000")
SECTION_80D_LIMIT = Decimal("25000")
STANDARD_DEDUCTION = Decimal("50000")
PROFESSIONAL_TAX_CAP = Decimal("2500")

# Placeholder, not derived from salary/rent/city. Overridable through
# AppSettings.hra_deduction_limit.
HRA_DEDUCTION_LIMIT = Decimal("360000")

CESS_RATE = Decimal("0.04")


class TaxRegime(str, Enum):
    """The two alternative computation modes."""
    OLD = "old"
    NEW = "new"


class DeductionSection(str, Enum):
    """Deduction sections whose limits are tracked."""
    SECTION_80C = "80C"
    SECTION_80D = "80D"
    HRA = "HRA"


# =============================================================================
# TAX SLABS
# =============================================================================

class TaxSlab(BaseModel):
    """
    One income bracket taxed at a fixed marginal rate.

    max is None for the open-ended top bracket.
    """

    min: Decimal = Field(..., ge=0)
    max: Optional[Decimal] = Field(default=None)
    rate: Decimal = Field(..., ge=0, le=100, description="Rate in percent")

    @model_validator(mode='after')
    def validate_bounds(self) -> 'TaxSlab':
        if self.max is not None and self.max < self.min:
            raise ValueError("Slab max cannot be below slab min")
        return self

    @property
    def width(self) -> Optional[Decimal]:
        """Inclusive width of the bracket (None when unbounded)."""
        if self.max is None:
            return None
        return self.max - self.min + 1


def _slabs(*rows: tuple[int, Optional[int], int]) -> tuple[TaxSlab, ...]:
    return tuple(
        TaxSlab(
            min=Decimal(lo),
            max=Decimal(hi) if hi is not None else None,
            rate=Decimal(rate),
        )
        for lo, hi, rate in rows
    )


# FY 2023-24
TAX_SLABS: dict[TaxRegime, tuple[TaxSlab, ...]] = {
    TaxRegime.OLD: _slabs(
        (0, 250000, 0),
        (250001, 500000, 5),
        (500001, 1000000, 20),
        (1000001, None, 30),
    ),
    TaxRegime.NEW: _slabs(
        (0, 300000, 0),
        (300001, 600000, 5),
        (600001, 900000, 10),
        (900001, 1200000, 15),
        (1200001, 1500000, 20),
        (1500001, None, 30),
    ),
}


# =============================================================================
# SETTINGS
# =============================================================================

class TaxSettings(BaseModel):
    """User-controlled tax calculation preferences."""

    preferred_regime: TaxRegime = TaxRegime.OLD
    include_projections: bool = Field(
        default=True,
        description="Annualize partial-year data from monthly averages"
    )


# =============================================================================
# DERIVED SNAPSHOTS
# =============================================================================

class RegimeResult(BaseModel):
    """Liability breakdown under one regime."""

    gross_income: Decimal = Field(..., ge=0)
    total_deductions: Decimal = Field(..., ge=0)
    taxable_income: Decimal = Field(..., ge=0)
    tax_liability: int = Field(..., ge=0)
    effective_rate: float = Field(..., ge=0, description="Percent of gross income")


class Recommendation(BaseModel):
    """Which regime to pick and why."""

    regime: TaxRegime
    savings: int = Field(..., ge=0)
    reason: str


class TaxCalculation(BaseModel):
    """Both regime results plus the recommendation."""

    old_regime: RegimeResult
    new_regime: RegimeResult
    recommendation: Recommendation

    def for_regime(self, regime: TaxRegime) -> RegimeResult:
        return self.old_regime if regime == TaxRegime.OLD else self.new_regime


class SectionUtilization(BaseModel):
    """How much of one section's limit has been used."""

    used: Decimal = Field(..., ge=0)
    limit: Decimal = Field(..., gt=0)
    utilization: float = Field(..., ge=0, le=100, description="Percent of limit")

    @property
    def remaining(self) -> Decimal:
        return self.limit - self.used


class DeductionUtilization(BaseModel):
    """Per-section utilization of the tracked deduction limits."""

    section_80c: SectionUtilization
    section_80d: SectionUtilization
    hra: SectionUtilization

    def for_section(self, section: DeductionSection) -> SectionUtilization:
        return {
            DeductionSection.SECTION_80C: self.section_80c,
            DeductionSection.SECTION_80D: self.section_80d,
            DeductionSection.HRA: self.hra,
        }[section]
