"""Error Hierarchy — typed, categorized exceptions for all Vetcepi failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No key material, plaintext medical history or ciphertext in any message

Design Decisions:
    - Single hierarchy with VetcepiError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Cipher failures carry no cause text in the message; the original exception is
      chained via `raise ... from` for server-side logs only
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATA_INTEGRITY = "data_integrity"
    CRYPTOGRAPHY = "cryptography"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    table: str | None = None
    record_id: str | None = None
    barcode: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class VetcepiError(Exception):
    """Base exception for all Vetcepi errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "table": self.context.table,
                    "record_id": self.context.record_id,
                    "barcode": self.context.barcode,
                },
            }
        }


# ─── Cipher Errors ──────────────────────────────────────────────

class EncryptionFailure(VetcepiError):
    """Cipher primitive could not produce ciphertext. Fatal to the write."""
    def __init__(self, reason: str = "cipher error", context: ErrorContext | None = None):
        super().__init__(
            f"Failed to encrypt medical data ({reason})",
            "ENCRYPTION_FAILURE", ErrorCategory.CRYPTOGRAPHY,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.reason = reason


class DecryptionFailure(VetcepiError):
    """Ciphertext could not be recovered (wrong key, corrupted or truncated data)."""
    def __init__(self, reason: str = "cipher error", context: ErrorContext | None = None):
        super().__init__(
            f"Unable to decrypt medical data ({reason})",
            "DECRYPTION_FAILURE", ErrorCategory.CRYPTOGRAPHY,
            ErrorSeverity.ERROR, context, 500,
        )
        self.reason = reason


# ─── Domain Errors (400-level) ──────────────────────────────────

class InputValidationError(VetcepiError):
    """Required input field missing or blank."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class DuplicateBarcodeError(VetcepiError):
    """Create collided with an existing medicine; recoverable by viewing it."""
    def __init__(
        self, barcode: str, existing_id: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.barcode = barcode
        ctx.record_id = existing_id
        super().__init__(
            f"A medicine with barcode '{barcode}' already exists",
            "DUPLICATE_BARCODE", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.barcode = barcode
        self.existing_id = existing_id


class MultipleMatchError(VetcepiError):
    """Store returned more than one row for a field expected to be unique."""
    def __init__(
        self, table: str, field: str, value: str, count: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.table = table
        if field == "barcode":
            ctx.barcode = value
        super().__init__(
            f"{count} {table} rows share {field} '{value}'",
            "MULTIPLE_MATCH", ErrorCategory.DATA_INTEGRITY,
            ErrorSeverity.CRITICAL, ctx, 409,
        )
        self.field = field
        self.value = value
        self.count = count


class ResourceNotFoundError(VetcepiError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(VetcepiError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ConfigurationError(VetcepiError):
    """Process configuration is unusable in the current posture."""
    def __init__(self, message: str, setting: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.setting = setting
