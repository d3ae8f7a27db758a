"""
Data Models Package

This package contains all Pydantic models used in LiveTax.
All data flowing through the system must conform to these schemas.
"""

from livetax.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from livetax.models.chat import ASSISTANT_GREETING, ChatMessage, ChatRole
from livetax.models.extraction import (
    DocumentType,
    ExtractedDocument,
    ExtractedDocumentData,
    ExtractionMetadata,
    ExtractionResult,
    ExtractionUserContext,
    FileUploadStatus,
    UploadedFile,
)
from livetax.models.insight import (
    Insight,
    InsightPriority,
    InsightType,
    Notification,
    NotificationType,
)
from livetax.models.ledger import DateRange, LedgerSummary, TransactionFilter
from livetax.models.profile import (
    Address,
    BusinessType,
    EmploymentDetails,
    EmploymentType,
    HousingDetails,
    HousingStatus,
    InvestmentExperience,
    InvestmentProfile,
    PersonalInfo,
    RiskTolerance,
    TaxInfo,
    UserProfile,
    UserType,
)
from livetax.models.state import PersistedState
from livetax.models.tax import (
    CESS_RATE,
    HRA_DEDUCTION_LIMIT,
    PROFESSIONAL_TAX_CAP,
    SECTION_80C_LIMIT,
    SECTION_80D_LIMIT,
    STANDARD_DEDUCTION,
    TAX_SLABS,
    DeductionSection,
    DeductionUtilization,
    Recommendation,
    RegimeResult,
    SectionUtilization,
    TaxCalculation,
    TaxRegime,
    TaxSettings,
    TaxSlab,
)
from livetax.models.transaction import (
    CATEGORY_FAMILIES,
    DEFAULT_CATEGORY,
    MAX_TRANSACTION_AMOUNT,
    PendingTransaction,
    Transaction,
    TransactionCategory,
    TransactionDraft,
    TransactionSource,
    TransactionType,
    category_belongs_to,
)
from livetax.models.validation import (
    BatchFileValidationResult,
    FileValidationResult,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Transaction models
    "CATEGORY_FAMILIES",
    "DEFAULT_CATEGORY",
    "MAX_TRANSACTION_AMOUNT",
    "PendingTransaction",
    "Transaction",
    "TransactionCategory",
    "TransactionDraft",
    "TransactionSource",
    "TransactionType",
    "category_belongs_to",
    # Tax models
    "CESS_RATE",
    "HRA_DEDUCTION_LIMIT",
    "PROFESSIONAL_TAX_CAP",
    "SECTION_80C_LIMIT",
    "SECTION_80D_LIMIT",
    "STANDARD_DEDUCTION",
    "TAX_SLABS",
    "DeductionSection",
    "DeductionUtilization",
    "Recommendation",
    "RegimeResult",
    "SectionUtilization",
    "TaxCalculation",
    "TaxRegime",
    "TaxSettings",
    "TaxSlab",
    # Profile models
    "Address",
    "BusinessType",
    "EmploymentDetails",
    "EmploymentType",
    "HousingDetails",
    "HousingStatus",
    "InvestmentExperience",
    "InvestmentProfile",
    "PersonalInfo",
    "RiskTolerance",
    "TaxInfo",
    "UserProfile",
    "UserType",
    # Extraction models
    "DocumentType",
    "ExtractedDocument",
    "ExtractedDocumentData",
    "ExtractionMetadata",
    "ExtractionResult",
    "ExtractionUserContext",
    "FileUploadStatus",
    "UploadedFile",
    # Advisory models
    "Insight",
    "InsightPriority",
    "InsightType",
    "Notification",
    "NotificationType",
    # Ledger models
    "DateRange",
    "LedgerSummary",
    "TransactionFilter",
    # Chat models
    "ASSISTANT_GREETING",
    "ChatMessage",
    "ChatRole",
    # Validation models
    "BatchFileValidationResult",
    "FileValidationResult",
    "ValidationIssue",
    "ValidationResult",
    # State
    "PersistedState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
