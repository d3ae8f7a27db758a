"""
Persisted State Model

The single keyed record written to storage after every mutation.

CRITICAL: Only source-of-truth data lives here. Derived values
(deduction utilization, tax calculations, insights) are NOT persisted;
they are recomputed from the transactions on load.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from livetax.models.extraction import ExtractedDocument, UploadedFile
from livetax.models.profile import UserProfile
from livetax.models.tax import TaxSettings
from livetax.models.transaction import PendingTransaction, Transaction


class PersistedState(BaseModel):
    """
    Storage layout.

    Top-level keys are camelCase (userProfile, isNewUser, transactions,
    taxSettings, uploadedFiles, tempExtractedData, pendingTransactions).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    user_profile: Optional[UserProfile] = None
    is_new_user: bool = True
    transactions: list[Transaction] = Field(default_factory=list)
    tax_settings: TaxSettings = Field(default_factory=TaxSettings)
    uploaded_files: list[UploadedFile] = Field(default_factory=list)
    temp_extracted_data: Optional[ExtractedDocument] = None
    pending_transactions: list[PendingTransaction] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
