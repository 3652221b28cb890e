"""
FeedFlux Custom Exceptions
=========================

Custom exception hierarchy for FeedFlux with error codes, context information,
and user-friendly error messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Feed retrieval and detection errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"
    FEED_HTTP_STATUS = "F007"
    FEED_UNKNOWN_DIALECT = "F008"
    FEED_MISSING_STRUCTURE = "F009"

    # Normalization errors (N001-N099)
    TIMESTAMP_FORMAT = "N001"

    # Time-series sink errors (W001-W099)
    SINK_CONNECTION = "W001"
    SINK_WRITE_FAILED = "W002"
    SINK_DATABASE = "W003"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # System errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S002"
    SYSTEM_MEMORY_ERROR = "S004"


class FeedFluxError(Exception):
    """Base exception for all FeedFlux errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedFlux error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the collector can carry on past the error
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(FeedFluxError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class FeedError(FeedFluxError):
    """Feed retrieval and decoding errors.

    Feed errors are always recoverable: the collector skips the offending
    source for the current cycle and moves on.
    """

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedFluxError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedFetchError(FeedError):
    """Feed could not be retrieved (transport failure or non-success status)."""

    pass


class DetectionError(FeedError):
    """Raw bytes matched neither supported feed dialect."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_UNKNOWN_DIALECT)
        kwargs.setdefault("user_message", f"Unrecognized feed document: {message}")
        super().__init__(message, feed_url=feed_url, **kwargs)


class TimestampFormatError(FeedFluxError):
    """No known timestamp layout matched a raw date string."""

    def __init__(self, message: str, raw_value: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if raw_value is not None:
            context["raw_value"] = raw_value

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.TIMESTAMP_FORMAT),
            context=context,
            user_message=kwargs.get("user_message", "Unrecognized timestamp"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class SinkError(FeedFluxError):
    """Time-series store errors."""

    def __init__(self, message: str, database: Optional[str] = None, **kwargs):
        """Initialize sink error.

        Args:
            message: Error message
            database: Target time-series database name
            **kwargs: Additional arguments for FeedFluxError
        """
        context = kwargs.get("context", {})
        if database:
            context["database"] = database

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.SINK_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Time-series store unavailable"),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class SinkWriteError(SinkError):
    """A point could not be written. Never retried."""

    def __init__(self, message: str, measurement: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if measurement:
            context["measurement"] = measurement
        kwargs["context"] = context
        kwargs.setdefault("error_code", ErrorCode.SINK_WRITE_FAILED)
        kwargs.setdefault("user_message", "Failed to write point")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ValidationError(FeedFluxError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedFluxError:
    """Convert generic exceptions to FeedFlux exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        FeedFlux exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedFluxError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = FeedFluxError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )

    elif isinstance(exception, PermissionError):
        error = FeedFluxError(
            message=f"Permission denied during {operation}: {str(exception)}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
            recoverable=False,
        )

    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {str(exception)}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )

    elif isinstance(exception, MemoryError):
        error = FeedFluxError(
            message=f"Memory exhausted during {operation}: {str(exception)}",
            error_code=ErrorCode.SYSTEM_MEMORY_ERROR,
            context=context,
            user_message="System resources exhausted",
            recoverable=True,
        )

    else:
        error = FeedFluxError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, FeedFluxError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
