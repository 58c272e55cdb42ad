"""Error Hierarchy — typed, categorized exceptions for every wtlibs failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Remote failures are wrapped, never swallowed; the cause is chained via `raise ... from`
    - ErrorContext names the dataset/field(s)/operation so callers can decide to retry
    - to_dict() produces a stable envelope for logs and callers

Design Decisions:
    - Single hierarchy with WTLibsError base: callers catch one type (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    LIFECYCLE = "lifecycle"
    RESOURCE_NOT_FOUND = "resource_not_found"
    REMOTE_READ = "remote_read"
    REMOTE_WRITE = "remote_write"
    OFF_CHAIN = "off_chain"
    DATABASE = "database"
    EXTERNAL_API = "external_api"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dataset: str | None = None
    field_names: list[str] | None = None
    operation: str | None = None
    ref: str | None = None
    scheme: str | None = None
    debug_info: dict[str, Any] | None = None


class WTLibsError(Exception):
    """Base exception for all wtlibs errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def retryable(self) -> bool:
        """Remote reads, remote writes and off-chain access may succeed on a retry."""
        return self.category in (
            ErrorCategory.REMOTE_READ,
            ErrorCategory.REMOTE_WRITE,
            ErrorCategory.OFF_CHAIN,
            ErrorCategory.EXTERNAL_API,
        )

    def to_dict(self) -> dict:
        """Convert to a standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "dataset": self.context.dataset,
                    "field_names": self.context.field_names,
                    "operation": self.context.operation,
                    "ref": self.context.ref,
                    "scheme": self.context.scheme,
                },
            }
        }


# ─── Dataset Errors ─────────────────────────────────────────────

class ObsoleteAccessError(WTLibsError):
    """Operation attempted on a dataset whose remote identity was destroyed."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            "This object was destroyed in a remote storage!",
            "OBSOLETE_ACCESS", ErrorCategory.LIFECYCLE,
            ErrorSeverity.ERROR, ctx,
        )


class NotDeployedError(WTLibsError):
    """Remote interaction attempted before the remote identity exists."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Cannot {operation}: object is not deployed",
            "NOT_DEPLOYED", ErrorCategory.LIFECYCLE,
            ErrorSeverity.ERROR, ctx,
        )


class UnknownFieldError(WTLibsError):
    """Field name was never declared on the dataset or pointer."""
    def __init__(self, field_name: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field_names = [field_name]
        super().__init__(
            f"Unknown field '{field_name}'",
            "UNKNOWN_FIELD", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.field_name = field_name


class RemoteSyncError(WTLibsError):
    """A remote getter failed during a sync batch; nothing from the batch was merged."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot sync remote data: {message}",
            "REMOTE_SYNC_FAILED", ErrorCategory.REMOTE_READ,
            ErrorSeverity.ERROR, context,
        )


class WriteFailureError(WTLibsError):
    """One or more remote setters failed during a flush.

    Fields whose setters completed stay `synced`; failed ones stay `dirty`.
    """
    def __init__(
        self,
        message: str,
        failed_fields: list[str],
        completed_fields: list[str],
        receipts: list[Any],
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.field_names = failed_fields
        super().__init__(
            f"Cannot write remote data: {message}",
            "REMOTE_WRITE_FAILED", ErrorCategory.REMOTE_WRITE,
            ErrorSeverity.ERROR, ctx,
        )
        self.failed_fields = failed_fields
        self.completed_fields = completed_fields
        self.receipts = receipts


# ─── Storage Pointer Errors ─────────────────────────────────────

class UnsupportedSchemeError(WTLibsError):
    """No off-chain adapter is registered for the URI scheme."""
    def __init__(self, scheme: str | None, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.scheme = scheme
        super().__init__(
            f"Unsupported data storage type: {scheme or 'null'}",
            "UNSUPPORTED_SCHEME", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.scheme = scheme


class DownloadError(WTLibsError):
    """The off-chain adapter failed to deliver the document."""
    def __init__(self, ref: str, message: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.ref = ref
        super().__init__(
            f"Cannot download {ref}: {message}",
            "DOWNLOAD_FAILED", ErrorCategory.OFF_CHAIN,
            ErrorSeverity.ERROR, ctx,
        )


class InvalidPointerError(WTLibsError):
    """A value declared as a pointer is not a usable reference."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_POINTER", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )


# ─── Domain Errors ──────────────────────────────────────────────

class InputDataError(WTLibsError):
    """Caller-supplied data is incomplete or malformed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field_names = [field]
        super().__init__(
            message, "INPUT_DATA_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.field = field


class HotelNotFoundError(WTLibsError):
    """Hotel is not registered in the index."""
    def __init__(self, address: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot find hotel at {address}: Not found in hotel list",
            "HOTEL_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )
        self.address = address


# ─── Infrastructure Errors ──────────────────────────────────────

class OffChainStorageError(WTLibsError):
    """Off-chain storage backend call failed."""
    def __init__(
        self, message: str, operation: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Off-chain storage {operation} failed: {message}",
            "OFF_CHAIN_STORAGE_ERROR", ErrorCategory.OFF_CHAIN,
            ErrorSeverity.ERROR, ctx,
        )
        self.operation = operation


class DatabaseError(WTLibsError):
    """Document store database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context,
        )
        self.operation = operation


class LedgerError(WTLibsError):
    """Ledger client or wallet call failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Cannot {operation}: {message}",
            "LEDGER_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, ctx,
        )
        self.operation = operation
