"""
Validation Result Models

Shared shape for reporting validation problems back to the caller,
field by field.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from livetax.models.transaction import utcnow


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue (dotted path for nested fields)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating user-supplied data.

    Errors block; warnings are shown but don't block.
    """

    validated_at: dt.datetime = Field(default_factory=utcnow)
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def errors_by_field(self) -> dict[str, list[str]]:
        """Group error messages by field for form display."""
        grouped: dict[str, list[str]] = {}
        for issue in self.issues:
            if issue.severity == "error":
                grouped.setdefault(issue.field, []).append(issue.message)
        return grouped


class FileValidationResult(BaseModel):
    """Outcome of checking an uploaded file before extraction."""

    file_name: str
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    extension: str = ""
    file_size: int = Field(default=0, ge=0)


class BatchFileValidationResult(BaseModel):
    """Outcome of checking several files uploaded together."""

    is_valid: bool
    global_errors: list[str] = Field(default_factory=list)
    results: list[FileValidationResult] = Field(default_factory=list)
    total_size: int = Field(default=0, ge=0)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r.is_valid)
