"""Validation package."""

from livetax.validation.files import (
    FileValidator,
    format_file_size,
    format_validation_errors,
    get_recommended_documents,
)
from livetax.validation.validator import (
    ProfileValidator,
    TransactionValidator,
    get_user_friendly_summary,
    issues_from_validation_error,
)

__all__ = [
    "FileValidator",
    "ProfileValidator",
    "TransactionValidator",
    "format_file_size",
    "format_validation_errors",
    "get_recommended_documents",
    "get_user_friendly_summary",
    "issues_from_validation_error",
]
