"""Error definitions for the webhook dispatcher."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND_ERROR = "not_found_error"
    DELIVERY_ERROR = "delivery_error"
    STORAGE_ERROR = "storage_error"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BaseError(Exception):
    """Base error class for all webhook dispatcher errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize base error.

        Args:
            message: Error message
            category: Error category
            severity: Error severity
            error_id: Optional unique error ID
            details: Optional error details
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.error_id = error_id
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()


class ValidationError(BaseError):
    """Raised when registration input or a trigger payload is invalid."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.LOW,
        error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, ErrorCategory.VALIDATION_ERROR, severity, error_id, details)


class NotFoundError(BaseError):
    """Raised when a subscription ID is unknown to the store."""

    def __init__(
        self,
        subscription_id: str,
        severity: ErrorSeverity = ErrorSeverity.LOW,
        error_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Subscription not found: {subscription_id}",
            ErrorCategory.NOT_FOUND_ERROR,
            severity,
            error_id,
            {"subscription_id": subscription_id},
        )
        self.subscription_id = subscription_id


class StorageError(BaseError):
    """Raised when the durable subscription store fails."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, ErrorCategory.STORAGE_ERROR, severity, error_id, details)


class DeliveryError(BaseError):
    """Base class for outcomes of a single delivery attempt."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, ErrorCategory.DELIVERY_ERROR, severity, error_id, details)
        self.status_code = status_code


class TransientDeliveryError(DeliveryError):
    """Network error, timeout, 5xx or 429. Retried internally.

    Attributes:
        retry_after: Seconds the receiver asked us to wait, if it said so
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code, ErrorSeverity.MEDIUM, details=details)
        self.retry_after = retry_after


class PermanentDeliveryError(DeliveryError):
    """Non-retryable response, e.g. 4xx other than 429."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code, ErrorSeverity.HIGH, details=details)


class ExhaustedRetriesError(DeliveryError):
    """Transient failures continued until the attempt budget ran out."""

    def __init__(self, attempts: int, last_error: TransientDeliveryError) -> None:
        super().__init__(
            f"Delivery failed after {attempts} attempts: {last_error.message}",
            last_error.status_code,
            ErrorSeverity.HIGH,
            details={"attempts": attempts},
        )
        self.attempts = attempts
        self.last_error = last_error
