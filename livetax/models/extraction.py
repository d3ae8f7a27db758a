"""
Document Extraction Models

The external extractor is an untrusted oracle. These models describe:
1. What we send it (ExtractionUserContext)
2. What it sends back (ExtractionResult), with raw transactions left as
   plain dicts until the normalizer repairs them
3. What we keep about a staged batch (ExtractedDocument) and about the
   uploaded file itself (UploadedFile)
"""

import datetime as dt
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from livetax.models.tax import TaxRegime
from livetax.models.transaction import utcnow


class DocumentType(str, Enum):
    """
    Document-type hints understood by the extractor.

    GENERAL is used when the user gave no hint; the extractor treats
    it like a salary slip.
    """
    FORM16 = "form16"
    SALARY_SLIP = "salary_slip"
    INVESTMENT_PROOF = "investment_proof"
    BUSINESS_DOCUMENT = "business_document"
    GENERAL = "general"


class FileUploadStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractionUserContext(BaseModel):
    """Small slice of the profile that helps the extractor."""

    user_type: str = "salaried"
    assessment_year: str = "2024-25"
    preferred_regime: TaxRegime = TaxRegime.OLD


class ExtractedDocumentData(BaseModel):
    """
    Payload of a successful extraction.

    CRITICAL: transactions are raw and untrusted. They MUST go through
    the normalizer before being staged.
    """

    document_type: Optional[str] = None
    transactions: list[dict[str, Any]] = Field(default_factory=list)
    employee_details: Optional[dict[str, Any]] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractionMetadata(BaseModel):
    document_type: Optional[str] = None
    file_name: str
    file_size: Optional[int] = Field(default=None, ge=0)
    processing_time: dt.datetime = Field(default_factory=utcnow)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: bool = False


class ExtractionResult(BaseModel):
    """
    Structured outcome of an extractor call.

    The extractor never raises: failures come back with success=False
    and an error message.
    """

    success: bool
    error: Optional[str] = None
    extracted_data: ExtractedDocumentData = Field(default_factory=ExtractedDocumentData)
    metadata: ExtractionMetadata

    @classmethod
    def failure(
        cls,
        error: str,
        file_name: str,
        document_type: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> "ExtractionResult":
        return cls(
            success=False,
            error=error,
            extracted_data=ExtractedDocumentData(transactions=[], confidence=0.0),
            metadata=ExtractionMetadata(
                document_type=document_type,
                file_name=file_name,
                file_size=file_size,
                error=True,
            ),
        )

    @property
    def found_transactions(self) -> bool:
        return self.success and len(self.extracted_data.transactions) > 0


class ExtractedDocument(BaseModel):
    """
    Metadata kept alongside a staged batch of pending transactions.

    attempt is the extraction attempt number that produced the batch
    (None when staged directly).
    """

    document_type: Optional[str] = None
    file_name: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    employee_details: Optional[dict[str, Any]] = None
    attempt: Optional[int] = None
    staged_at: dt.datetime = Field(default_factory=utcnow)


class UploadedFile(BaseModel):
    """Record of a document the user uploaded."""

    id: UUID = Field(default_factory=uuid4)
    file_name: str
    file_size: int = Field(..., ge=0)
    mime_type: Optional[str] = None
    document_type: str = DocumentType.GENERAL.value
    status: FileUploadStatus = FileUploadStatus.UPLOADING
    uploaded_at: dt.datetime = Field(default_factory=utcnow)
    transaction_count: int = Field(default=0, ge=0)
    error: Optional[str] = None
