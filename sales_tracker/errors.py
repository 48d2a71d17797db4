"""Error taxonomy shared by the services, stores and HTTP layer."""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Stable identifier for a failure class, exposed to API clients."""

    MISSING_PARAMETER = "missing_parameter"
    INVALID_DATE_RANGE = "invalid_date_range"
    PERIOD_TOO_LARGE = "period_too_large"
    UNSUPPORTED_FORMAT = "unsupported_format"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    STORAGE = "storage_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    INTERNAL = "internal_error"


class LedgerError(Exception):
    """Base class for every error raised by the ledger.

    ``category`` tells callers what went wrong without parsing the message,
    ``cause`` keeps the underlying exception for diagnostics.
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    client_error: bool = False
    default_message: str = "internal error"

    def __init__(
        self, message: Optional[str] = None, *, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.cause = cause


class ValidationError(LedgerError):
    """Raised when a request is malformed; never reaches storage."""

    category = ErrorCategory.INVALID_INPUT
    client_error = True
    default_message = "invalid input"


class MissingParameter(ValidationError):
    category = ErrorCategory.MISSING_PARAMETER
    default_message = "missing required parameter"


class InvalidDateRange(ValidationError):
    category = ErrorCategory.INVALID_DATE_RANGE
    default_message = "invalid date range"


class PeriodTooLarge(ValidationError):
    category = ErrorCategory.PERIOD_TOO_LARGE
    default_message = "date range exceeds maximum allowed period"


class UnsupportedFormat(ValidationError):
    category = ErrorCategory.UNSUPPORTED_FORMAT
    default_message = "unsupported date format"


class InvalidInput(ValidationError):
    pass


class RecordNotFoundError(LedgerError):
    category = ErrorCategory.NOT_FOUND
    client_error = True
    default_message = "item not found"


class StorageError(LedgerError):
    """Raised when the database fails; ``transient`` marks retryable failures."""

    category = ErrorCategory.STORAGE
    default_message = "database error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message, cause=cause)
        self.transient = transient


class OperationTimeout(LedgerError):
    category = ErrorCategory.TIMEOUT
    default_message = "operation timeout"


class OperationCancelled(LedgerError):
    category = ErrorCategory.CANCELLED
    default_message = "operation cancelled"


class InternalError(LedgerError):
    category = ErrorCategory.INTERNAL
