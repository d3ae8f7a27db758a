"""
Data Export

Transactions as CSV and the tax picture as a JSON summary, both ready to
be offered as a download. Nothing here touches storage.
"""

import csv
import datetime as dt
import io
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from livetax.models.profile import UserProfile
from livetax.models.tax import TaxCalculation
from livetax.models.transaction import Transaction, utcnow


CSV_HEADERS = ["Date", "Description", "Amount", "Type", "Category", "Has Receipt"]


class ExportUserInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    pan: Optional[str] = None
    assessment_year: Optional[str] = None


class TaxSummaryExport(BaseModel):
    """JSON tax summary: who, which year, both regimes, when exported."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_info: ExportUserInfo
    tax_calculations: Optional[TaxCalculation] = None
    exported_at: dt.datetime = Field(default_factory=utcnow)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def transactions_to_csv(transactions: list[Transaction]) -> str:
    """One row per transaction in list order, receipt as Yes/No."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for t in transactions:
        writer.writerow([
            t.date.isoformat(),
            t.description,
            str(t.amount),
            t.type.value,
            t.category.value,
            "Yes" if t.has_receipt else "No",
        ])
    return buffer.getvalue()


def build_tax_summary(
    user_profile: Optional[UserProfile],
    calculation: Optional[TaxCalculation],
    exported_at: Optional[dt.datetime] = None,
) -> TaxSummaryExport:
    user_info = ExportUserInfo()
    if user_profile is not None:
        personal = user_profile.personal_info
        user_info = ExportUserInfo(
            name=personal.full_name if personal else None,
            pan=personal.pan if personal else None,
            assessment_year=user_profile.tax_info.assessment_year,
        )

    return TaxSummaryExport(
        user_info=user_info,
        tax_calculations=calculation,
        exported_at=exported_at or utcnow(),
    )


def transactions_export_name(today: Optional[dt.date] = None) -> str:
    return f"transactions_{(today or dt.date.today()).isoformat()}.csv"


def tax_summary_export_name(today: Optional[dt.date] = None) -> str:
    return f"tax_summary_{(today or dt.date.today()).isoformat()}.json"
