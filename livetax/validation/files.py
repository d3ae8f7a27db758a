"""
Upload File Validation

Cheap checks run on an uploaded document BEFORE it is sent to the
extractor. A rejected file never costs an API call.

Errors block the upload. A file name that doesn't look like the chosen
document type is only a warning: the user may know better.
"""

import re
from typing import Optional

from livetax.config import get_settings
from livetax.models.profile import UserType
from livetax.models.validation import BatchFileValidationResult, FileValidationResult


ALLOWED_FILE_TYPES = {
    # Document types
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    # Image types (for scanned documents)
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/tiff": ".tiff",
    "image/tif": ".tif",
}

ALLOWED_EXTENSIONS = frozenset(ALLOWED_FILE_TYPES.values()) | {".jpeg"}

DANGEROUS_EXTENSIONS = frozenset({
    ".exe", ".bat", ".cmd", ".scr", ".vbs", ".js", ".jar", ".app", ".dmg",
})

VALID_DOUBLE_EXTENSIONS = frozenset({".tar.gz", ".tar.bz2", ".tar.xz"})

MAX_FILE_NAME_LENGTH = 255

SUSPICIOUS_PATTERNS = [
    re.compile(r'[<>:"|?*\x00-\x1f]'),  # Invalid filename characters
    re.compile(r"^\."),                  # Hidden files
    re.compile(r"\.\."),                 # Directory traversal
    re.compile(r"__MACOSX"),             # System files
    re.compile(r"thumbs\.db", re.IGNORECASE),
    re.compile(r"desktop\.ini", re.IGNORECASE),
]

DOUBLE_EXTENSION_PATTERN = re.compile(r"\.[a-zA-Z0-9]+\.[a-zA-Z0-9]+$")

SCRIPT_INJECTION_MARKERS = ("<script>", "javascript:")

# File-name fragments expected for each document type
DOCUMENT_TYPE_HINTS = {
    "form16": ["form16", "form-16", "form_16"],
    "salary_slip": ["salary", "payslip", "pay_slip", "pay-slip"],
    "bank_statement": ["bank", "statement", "stmt"],
    "investment_proof": ["investment", "mutual", "sip", "elss", "ppf", "nsc"],
    "hra_receipt": ["hra", "rent", "receipt"],
    "medical_insurance": ["medical", "health", "insurance"],
    "profit_loss": ["profit", "loss", "p&l", "pl", "income"],
    "gst_return": ["gst", "return", "gstr"],
}

DOCUMENT_CATEGORIES = {
    "salaried": [
        "form16",
        "salary_slip",
        "bank_statement",
        "investment_proof",
        "hra_receipt",
        "medical_insurance",
        "tds_certificate",
        "aadhaar",
        "pan_card",
    ],
    "business": [
        "profit_loss",
        "balance_sheet",
        "gst_return",
        "business_expense",
        "advance_tax_receipt",
        "depreciation_schedule",
        "bank_statement",
        "aadhaar",
        "pan_card",
    ],
    "common": [
        "bank_statement",
        "investment_proof",
        "medical_insurance",
        "aadhaar",
        "pan_card",
    ],
}


# =============================================================================
# HELPERS
# =============================================================================

def format_file_size(size: int) -> str:
    """Human-readable size, e.g. '1.5 MB'."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def get_file_extension(file_name: str) -> str:
    """Lower-case extension including the dot, or '' if there is none."""
    dot = file_name.rfind(".")
    if dot <= 0:
        return ""
    return file_name[dot:].lower()


def contains_suspicious_patterns(file_name: str) -> bool:
    return any(pattern.search(file_name) for pattern in SUSPICIOUS_PATTERNS)


def security_errors(file_name: str) -> list[str]:
    """Executable extensions, disguised double extensions, script injection."""
    errors = []

    extension = get_file_extension(file_name)
    if extension in DANGEROUS_EXTENSIONS:
        errors.append(f'File type "{extension}" is not allowed for security reasons')

    double = DOUBLE_EXTENSION_PATTERN.search(file_name)
    if double and double.group(0).lower() not in VALID_DOUBLE_EXTENSIONS:
        errors.append("File has suspicious double extension")

    lowered = file_name.lower()
    if any(marker in lowered for marker in SCRIPT_INJECTION_MARKERS):
        errors.append("File name contains potentially malicious content")

    return errors


def document_type_warnings(file_name: str, document_type: Optional[str]) -> list[str]:
    hints = DOCUMENT_TYPE_HINTS.get(document_type or "")
    if not hints:
        return []
    lowered = file_name.lower()
    if any(hint in lowered for hint in hints):
        return []
    return [
        f"File name doesn't seem to match document type \"{document_type}\". "
        "Please verify this is the correct document."
    ]


def get_recommended_documents(user_type: Optional[UserType]) -> list[str]:
    """Document types worth asking this kind of user for."""
    if user_type is None:
        return list(DOCUMENT_CATEGORIES["common"])

    documents: list[str] = []
    if user_type in (UserType.SALARIED, UserType.BOTH):
        documents.extend(DOCUMENT_CATEGORIES["salaried"])
    if user_type in (UserType.BUSINESS, UserType.BOTH):
        documents.extend(DOCUMENT_CATEGORIES["business"])

    # Remove duplicates, keep order
    return list(dict.fromkeys(documents))


# =============================================================================
# VALIDATOR
# =============================================================================

class FileValidator:
    """
    Validates uploaded documents before extraction.

    Limits come from AppSettings (max size, max files per upload).
    """

    def __init__(
        self,
        max_file_size: Optional[int] = None,
        max_files: Optional[int] = None,
    ):
        app_settings = get_settings().app
        self._max_file_size = max_file_size or app_settings.max_upload_size_bytes
        self._max_files = max_files or app_settings.max_files_per_upload

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    def validate_file(
        self,
        file_name: str,
        file_size: int,
        mime_type: Optional[str] = None,
        document_type: Optional[str] = None,
    ) -> FileValidationResult:
        errors = []
        warnings = []

        if file_size > self._max_file_size:
            errors.append(
                f"File size ({format_file_size(file_size)}) exceeds maximum allowed "
                f"size ({format_file_size(self._max_file_size)})"
            )
        if file_size == 0:
            errors.append("File is empty")

        extension = get_file_extension(file_name)
        if mime_type not in ALLOWED_FILE_TYPES and extension not in ALLOWED_EXTENSIONS:
            errors.append(
                f'File type "{mime_type or extension}" is not allowed. '
                "Allowed types: PDF, DOC, DOCX, XLS, XLSX, JPG, PNG, WEBP, TIFF"
            )

        if not file_name.strip():
            errors.append("File must have a valid name")
        if len(file_name) > MAX_FILE_NAME_LENGTH:
            errors.append(f"File name is too long (maximum {MAX_FILE_NAME_LENGTH} characters)")
        if contains_suspicious_patterns(file_name):
            errors.append("File name contains invalid characters")

        warnings.extend(document_type_warnings(file_name, document_type))
        errors.extend(security_errors(file_name))

        return FileValidationResult(
            file_name=file_name,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            extension=extension,
            file_size=max(file_size, 0),
        )

    def validate_files(
        self,
        files: list[tuple[str, int, Optional[str]]],
    ) -> BatchFileValidationResult:
        """
        Validate several files uploaded together.

        Args:
            files: (file_name, file_size, mime_type) tuples
        """
        global_errors = []

        if len(files) > self._max_files:
            global_errors.append(f"Too many files selected. Maximum allowed: {self._max_files}")
        if not files:
            global_errors.append("No files selected")

        results = [
            self.validate_file(name, size, mime_type)
            for name, size, mime_type in files
        ]

        names = [name for name, _, _ in files]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            global_errors.append(f"Duplicate files detected: {', '.join(duplicates)}")

        total_size = sum(max(size, 0) for _, size, _ in files)
        # Allow up to 2x max for multiple files
        if total_size > self._max_file_size * 2:
            global_errors.append(f"Total file size ({format_file_size(total_size)}) is too large")

        return BatchFileValidationResult(
            is_valid=not global_errors and all(r.is_valid for r in results),
            global_errors=global_errors,
            results=results,
            total_size=total_size,
        )


def format_validation_errors(result: BatchFileValidationResult) -> str:
    """Plain-text list of everything wrong with a batch."""
    parts = []

    if result.global_errors:
        parts.append("General Issues:\n" + "\n".join(result.global_errors))

    for index, file_result in enumerate(result.results, start=1):
        if not file_result.is_valid:
            parts.append(
                f"File {index} ({file_result.file_name}):\n" + "\n".join(file_result.errors)
            )

    return "\n\n".join(parts)
