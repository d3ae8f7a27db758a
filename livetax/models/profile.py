"""
User Profile Models

The profile is captured once during onboarding and updated afterwards.
It is never deleted.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from livetax.models.tax import TaxRegime
from livetax.models.transaction import utcnow


class UserType(str, Enum):
    """How the user earns: drives which documents are requested."""
    SALARIED = "salaried"
    BUSINESS = "business"
    BOTH = "both"


class EmploymentType(str, Enum):
    PRIVATE = "private"
    GOVERNMENT = "government"
    PSU = "psu"
    NGO = "ngo"


class BusinessType(str, Enum):
    SOLE_PROPRIETORSHIP = "sole_proprietorship"
    PARTNERSHIP = "partnership"
    COMPANY = "company"
    LLP = "llp"
    PROFESSIONAL = "professional"


class HousingStatus(str, Enum):
    OWNED = "owned"
    RENTED = "rented"
    FAMILY = "family"


class RiskTolerance(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class InvestmentExperience(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class Address(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r"^[0-9]{6}$")
    country: str = "India"


class PersonalInfo(BaseModel):
    """Identity details used on exports and filings."""
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(
        ...,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Contact email"
    )
    phone: str = Field(..., min_length=10, max_length=15)
    date_of_birth: Optional[dt.date] = None
    pan: str = Field(
        ...,
        pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$",
        description="Permanent Account Number"
    )
    aadhaar: Optional[str] = Field(default=None, pattern=r"^[0-9]{12}$")
    address: Optional[Address] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class TaxInfo(BaseModel):
    assessment_year: str = Field(default="2024-25", pattern=r"^\d{4}-\d{2}$")
    preferred_regime: TaxRegime = TaxRegime.OLD
    previous_year_returns: bool = False


class EmploymentDetails(BaseModel):
    """
    Salaried and/or business details.

    Which fields matter depends on UserType.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    employer_name: Optional[str] = Field(default=None, max_length=200)
    employment_type: Optional[EmploymentType] = None
    business_name: Optional[str] = Field(default=None, max_length=200)
    business_type: Optional[BusinessType] = None
    gst_registered: bool = False


class HousingDetails(BaseModel):
    housing_status: HousingStatus = HousingStatus.RENTED
    monthly_rent: Optional[Decimal] = Field(default=None, ge=0)
    home_loan: bool = False
    home_loan_amount: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode='after')
    def validate_housing(self) -> 'HousingDetails':
        if self.home_loan_amount and not self.home_loan:
            raise ValueError("Home loan amount given without a home loan")
        return self


class InvestmentProfile(BaseModel):
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    investment_experience: InvestmentExperience = InvestmentExperience.BEGINNER


class UserProfile(BaseModel):
    """
    Aggregate user profile.

    Created at onboarding. Only user_type is required; the rest is
    filled in as the user goes.
    """

    user_type: UserType = UserType.SALARIED
    personal_info: Optional[PersonalInfo] = None
    tax_info: TaxInfo = Field(default_factory=TaxInfo)
    employment_details: EmploymentDetails = Field(default_factory=EmploymentDetails)
    housing_details: HousingDetails = Field(default_factory=HousingDetails)
    investment_profile: InvestmentProfile = Field(default_factory=InvestmentProfile)
    required_documents: list[str] = Field(default_factory=list)
    onboarding_completed: bool = False

    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    @property
    def display_name(self) -> Optional[str]:
        return self.personal_info.full_name if self.personal_info else None
