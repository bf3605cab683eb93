"""
Centralized error handling and classification for w3gallery.

Every error raised by the storage adapter, the gallery manager, the router or
the view layer is a GalleryError carrying a category, a severity and a
user-facing message. The shell's error boundary turns them into ErrorInfo.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from w3gallery.logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    AUTHENTICATION = "authentication"
    STORAGE = "storage"
    VALIDATION = "validation"
    NETWORK = "network"
    ROUTING = "routing"
    RENDERING = "rendering"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


class GalleryError(Exception):
    """Base exception class for w3gallery."""

    USER_MESSAGES = {
        ErrorCategory.AUTHENTICATION: "Login failed. Check your key and secret.",
        ErrorCategory.STORAGE: "The gallery storage could not be reached.",
        ErrorCategory.VALIDATION: "The submitted data is invalid.",
        ErrorCategory.NETWORK: "A network error occurred. Check your connection.",
        ErrorCategory.ROUTING: "This page could not be loaded.",
        ErrorCategory.RENDERING: "This page could not be displayed.",
        ErrorCategory.UNKNOWN: "An unexpected error occurred.",
    }

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        retry_suggested: bool = False,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or self.USER_MESSAGES.get(category, "An error occurred.")
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_suggested = retry_suggested
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with its classification."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        if self.severity is ErrorSeverity.LOW:
            # Expected outcomes such as a missing optional object
            logger.debug("expected_error", error_type=type(self).__name__, error_message=str(self), **error_context)
            return

        log_error(self, error_context)

        if self.category is ErrorCategory.AUTHENTICATION:
            log_security_event(self.category.value, context=error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class AuthenticationError(GalleryError):
    """Login probe failures."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            code=code or "auth_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class StorageError(GalleryError):
    """Network, authorization or not-found failures from the storage backend."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        recoverable: bool = True,
        retry_suggested: bool = False,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=severity,
            code=code or "storage_error",
            user_message=user_message,
            details=details,
            recoverable=recoverable,
            retry_suggested=retry_suggested,
            original_exception=original_exception,
        )


class ObjectNotFoundError(StorageError):
    """The requested key does not exist in the bucket."""

    def __init__(
        self,
        key: str,
        original_exception: Exception | None = None,
    ):
        self.key = key
        super().__init__(
            message=f"Object not found: {key}",
            code="object_not_found",
            user_message="The requested item does not exist.",
            severity=ErrorSeverity.LOW,
            details={"key": key},
            original_exception=original_exception,
        )


class ValidationError(GalleryError):
    """Invalid input such as an unreadable photo."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class NetworkError(GalleryError):
    """Network-related errors outside the storage backend."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            code=code or "network_error",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )


class RoutingError(GalleryError):
    """A page fragment could not be fetched."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.ROUTING,
            severity=ErrorSeverity.HIGH,
            code=code or "fragment_fetch_failed",
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )


class ElementNotFoundError(GalleryError):
    """The mounted fragment has no element with the requested id."""

    def __init__(self, element_id: str):
        self.element_id = element_id
        super().__init__(
            message=f"No element with id '{element_id}' in the mounted fragment",
            category=ErrorCategory.RENDERING,
            severity=ErrorSeverity.MEDIUM,
            code="element_not_found",
            details={"element_id": element_id},
            recoverable=False,
        )


class ErrorHandler:
    """Classifies arbitrary exceptions into GalleryError information."""

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}
        self.logger = get_logger(__name__)

    def handle_error(
        self,
        error: Exception,
        context: dict[str, Any] | None = None,
    ) -> ErrorInfo:
        """
        Handle and classify errors.

        Args:
            error: Exception to handle
            context: Additional context information

        Returns:
            ErrorInfo: Structured error information
        """
        context = context or {}

        if isinstance(error, GalleryError):
            error_info = error.get_error_info()
        else:
            error_info = self._classify_error(error, context).get_error_info()

        self._track_error(error_info.code)
        return error_info

    def _classify_error(self, error: Exception, context: dict[str, Any]) -> GalleryError:
        """Wrap a foreign exception into the closest GalleryError."""
        error_type = type(error).__name__
        error_message = str(error)
        lowered = error_message.lower()
        details = {"original_type": error_type, **context}

        if any(keyword in lowered for keyword in ["authentication", "login", "credential", "unauthorized", "forbidden"]):
            return AuthenticationError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["storage", "bucket", "object", "gcs"]):
            return StorageError(message=error_message, details=details, original_exception=error)

        if any(keyword in lowered for keyword in ["validation", "invalid", "required", "missing"]):
            return ValidationError(message=error_message, details=details, original_exception=error)

        if isinstance(error, (ConnectionError, TimeoutError)) or any(
            keyword in lowered for keyword in ["network", "connection", "timeout", "unreachable"]
        ):
            return NetworkError(message=error_message, details=details, original_exception=error)

        return GalleryError(
            message=error_message,
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            details=details,
            original_exception=error,
        )

    def _track_error(self, error_code: str) -> None:
        """Track error occurrence for monitoring."""
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1

        if self.error_counts[error_code] % 10 == 0:
            self.logger.warning("frequent_error_detected", error_code=error_code, count=self.error_counts[error_code])


error_handler = ErrorHandler()


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
    """Global error handling function."""
    return error_handler.handle_error(error, context)


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return error_handler
