"""
Two-Stage Validation Pipeline for user-entered data

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Format validation (amount range, description length, PAN format...)
- Category/type family pairing
This is delegated to the pydantic models; their errors are turned into
per-field ValidationIssues for form display.

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Unusually old dates
- Possible duplicates of an existing transaction
These produce warnings only.

IMPORTANT: Validation NEVER silently fixes issues.
Manual data is either accepted as typed or rejected with reasons.
"""

import datetime as dt
from typing import Any, Optional

from pydantic import ValidationError

from livetax.models.profile import UserProfile
from livetax.models.transaction import Transaction, TransactionDraft
from livetax.models.validation import ValidationIssue, ValidationResult


# pydantic error type -> our issue type
ISSUE_TYPES = {
    "missing": "missing",
    "string_too_short": "missing",
    "string_too_long": "too_long",
    "greater_than": "out_of_range",
    "less_than_equal": "out_of_range",
    "decimal_max_places": "invalid_value",
    "enum": "invalid_value",
    "string_pattern_mismatch": "invalid_format",
    "date_from_datetime_parsing": "invalid_format",
    "date_parsing": "invalid_format",
    "decimal_parsing": "invalid_format",
}


def issues_from_validation_error(
    error: ValidationError,
    model_level_field: str,
) -> list[ValidationIssue]:
    """
    Convert pydantic errors into per-field issues.

    Errors raised by model-level validators have no location; they are
    attributed to model_level_field.
    """
    issues = []
    for err in error.errors(include_url=False):
        loc = ".".join(str(part) for part in err["loc"]) or model_level_field
        message = err["msg"].removeprefix("Value error, ")
        issues.append(ValidationIssue(
            field=loc,
            issue_type=ISSUE_TYPES.get(err["type"], "invalid_value"),
            message=message,
            severity="error",
        ))
    return issues


def _result(issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
        warnings=[issue.message for issue in issues if issue.severity == "warning"],
    )


class TransactionValidator:
    """
    Validates manually entered transactions.

    Stage 1: Schema validation (TransactionDraft)
    Stage 2: Semantic validation (needs the existing transactions for
             duplicate checks)
    """

    OLD_DATE_YEARS = 2

    def __init__(self, existing: Optional[list[Transaction]] = None):
        """
        Args:
            existing: Permanent transactions for duplicate checking.
                      If None, duplicate checking is skipped.
        """
        self._existing = existing

    def _validate_schema(
        self,
        data: dict[str, Any],
    ) -> tuple[Optional[TransactionDraft], list[ValidationIssue]]:
        try:
            return TransactionDraft.model_validate(data), []
        except ValidationError as e:
            return None, issues_from_validation_error(e, model_level_field="category")

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        today: dt.date,
    ) -> list[ValidationIssue]:
        issues = []

        if draft.date > today:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        oldest_reasonable = today - dt.timedelta(days=365 * self.OLD_DATE_YEARS)
        if draft.date < oldest_reasonable:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Transaction date ({draft.date}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date belongs to this assessment year",
            ))

        if self._existing:
            for t in self._existing:
                if (
                    t.date == draft.date
                    and t.amount == draft.amount
                    and t.category == draft.category
                    and t.description.lower() == draft.description.lower()
                ):
                    issues.append(ValidationIssue(
                        field="duplicate",
                        issue_type="potential_duplicate",
                        message=(
                            f"A {draft.category.value} transaction of "
                            f"₹{draft.amount:,.2f} on {draft.date} already exists"
                        ),
                        severity="warning",
                        suggested_fix="Please verify this isn't a duplicate entry",
                    ))
                    break

        return issues

    def validate(
        self,
        data: dict[str, Any],
        today: Optional[dt.date] = None,
    ) -> tuple[Optional[TransactionDraft], ValidationResult]:
        """
        Run the full pipeline.

        Returns:
            (draft, result). draft is None when there are errors.
        """
        draft, issues = self._validate_schema(data)

        # Only run stage 2 if stage 1 passes
        if draft is not None:
            issues.extend(self._validate_semantic(draft, today or dt.date.today()))

        return draft, _result(issues)


class ProfileValidator:
    """Schema validation for the onboarding profile."""

    def validate(
        self,
        data: dict[str, Any],
    ) -> tuple[Optional[UserProfile], ValidationResult]:
        try:
            profile = UserProfile.model_validate(data)
        except ValidationError as e:
            return None, _result(issues_from_validation_error(e, model_level_field="profile"))

        issues = []
        if profile.personal_info is None:
            issues.append(ValidationIssue(
                field="personal_info",
                issue_type="missing",
                message="Personal details are missing; exports will not include your name or PAN",
                severity="warning",
                suggested_fix="Complete your personal details in the profile",
            ))
        return profile, _result(issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Generate a user-friendly summary of validation results.

    This is what we show to non-technical users.
    """
    if result.is_valid and not result.warnings:
        return "✅ All checks passed!"

    lines = []

    if result.has_errors:
        lines.append("❌ Please fix the following:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.field}: {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    return "\n".join(lines)

