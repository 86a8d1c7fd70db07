"""Error handling for the board game collection pipeline.

This module provides:
- Exception classes for transport, document parsing, enrichment and configuration errors
- User-friendly error message generation with suggested actions
- A centralized error handling service with a bounded error history

Collection fetch and parse errors are fatal to the pipeline. Enrichment batch
errors are recoverable and never leave the enrichment loop.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NETWORK = "network"
    PARSING = "parsing"
    ENRICHMENT = "enrichment"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Context information for an error."""
    operation: str
    component: str
    details: dict[str, Any]


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


class TransportError(AppError):
    """Network or HTTP failure while fetching a document."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        suggested_actions = [
            "Check your internet connection",
            "Try again in a few moments",
        ]
        if status_code == 429:
            suggested_actions = [
                "Wait a few minutes before retrying",
                "Increase the delay between enrichment batches",
            ]
        elif status_code == 404:
            suggested_actions = ["Check the configured service URL"]
        elif status_code and status_code >= 500:
            suggested_actions = [
                "The collection service is experiencing issues",
                "Try again later",
            ]

        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {original_error}"
        if url:
            technical_details = f"URL: {url}" + (f"\n{technical_details}" if technical_details else "")
        if status_code:
            technical_details = f"Status: {status_code}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class CollectionParseError(AppError):
    """A collection or lookup document could not be turned into records."""

    def __init__(
        self,
        message: str,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.PARSING,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions or ["Try fetching the collection again"],
            technical_details=technical_details,
            recoverable=True,
        )


class MalformedDocumentError(CollectionParseError):
    """The document is not well-formed XML."""

    def __init__(self, original_error: Exception | None = None) -> None:
        super().__init__(
            "Error parsing XML response",
            suggested_actions=[
                "The service may have returned an incomplete response",
                "Try fetching the collection again",
            ],
            technical_details=(
                f"{type(original_error).__name__}: {original_error}" if original_error else None
            ),
        )
        self.original_error = original_error


class ApiError(CollectionParseError):
    """The service answered with an error message instead of a collection."""

    def __init__(self, api_message: str) -> None:
        super().__init__(
            f"Collection service returned: {api_message}",
            suggested_actions=[
                "Check that the username is correct",
                "If the request was queued, try again in a few seconds",
            ],
            technical_details=api_message,
        )
        self.api_message = api_message


class EmptyCollectionError(CollectionParseError):
    """The document held no games."""

    def __init__(self) -> None:
        super().__init__(
            "No games found in collection",
            suggested_actions=[
                "Check that the collection is public and has owned games",
                "Verify the username",
            ],
        )


class EnrichmentBatchError(AppError):
    """A single enrichment batch failed; the remaining batches still run."""

    def __init__(
        self,
        message: str,
        batch_index: int,
        game_ids: list[str] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        technical_details = f"Batch: {batch_index}"
        if game_ids:
            technical_details += f"\nIDs: {','.join(game_ids)}"
        if original_error:
            technical_details += f"\nError: {type(original_error).__name__}: {original_error}"

        super().__init__(
            message=message,
            category=ErrorCategory.ENRICHMENT,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Affected games keep their collection values"],
            technical_details=technical_details,
            recoverable=True,
        )
        self.batch_index = batch_index
        self.game_ids = game_ids or []
        self.original_error = original_error


class ValidationError(AppError):
    """Exception for validation-related errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        constraints: list[str] | None = None,
    ) -> None:
        suggested_actions = ["Review the input requirements"]
        if constraints:
            suggested_actions.extend([f"Ensure: {c}" for c in constraints])

        technical_details = None
        if field:
            technical_details = f"Field: {field}"
        if value is not None:
            value_str = str(value)[:100]
            technical_details = (technical_details or "") + f"\nValue: {value_str}"

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.field = field
        self.value = value
        self.constraints = constraints or []


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration settings",
            "Reset to default values if needed",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class ErrorHandlingService:
    """Centralized error handling service.

    Converts exceptions to ``AppError``, logs them with their technical
    details and keeps a bounded history for later inspection.
    """

    def __init__(self, max_history_size: int = 100) -> None:
        self._error_history: list[tuple[float, AppError]] = []
        self._max_history_size = max_history_size
        log.info("Error handling service initialized")

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information

        Returns:
            User-friendly error representation
        """
        app_error = self._convert_to_app_error(error, operation, component, context)
        self._log_error(app_error, operation, component, context)

        self._error_history.append((time.time(), app_error))
        if len(self._error_history) > self._max_history_size:
            self._error_history.pop(0)

        return app_error.to_user_friendly()

    def _convert_to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        url = context.get("url") if context else None

        if isinstance(error, httpx.ConnectError):
            return TransportError(
                message="Unable to connect to the collection service. Please check your internet connection.",
                original_error=error,
                url=url,
            )
        elif isinstance(error, httpx.TimeoutException):
            return TransportError(
                message="The request timed out. The collection service may be slow or unavailable.",
                original_error=error,
                url=url,
            )
        elif isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            return TransportError(
                message=self._get_http_error_message(status_code),
                original_error=error,
                url=str(error.request.url) if error.request else url,
                status_code=status_code,
            )
        elif isinstance(error, httpx.RequestError):
            return TransportError(
                message="A network error occurred. Please check your connection.",
                original_error=error,
                url=url,
            )
        elif isinstance(error, json.JSONDecodeError):
            return ValidationError(
                message="Invalid JSON format. The data could not be parsed.",
                field="json_content",
            )
        elif isinstance(error, ValueError):
            return ValidationError(
                message=str(error),
                field=context.get("field") if context else None,
                value=context.get("value") if context else None,
            )
        elif isinstance(error, TypeError):
            return ValidationError(
                message=f"Invalid data type: {error}",
                field=context.get("field") if context else None,
            )

        return AppError(
            message="An unexpected error occurred. Please try again.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.ERROR,
            technical_details=f"{type(error).__name__}: {error}",
            recoverable=True,
            context=ErrorContext(
                operation=operation,
                component=component,
                details=context or {},
            ),
        )

    @staticmethod
    def _get_http_error_message(status_code: int) -> str:
        """Get a user-friendly message for HTTP status codes."""
        messages = {
            400: "The request was invalid. Please check the username.",
            401: "Authentication required by the collection service.",
            403: "Access denied by the collection service.",
            404: "The requested collection was not found.",
            429: "Too many requests. Please wait before trying again.",
            500: "The collection service encountered an error. Please try again later.",
            502: "The collection service is temporarily unavailable. Please try again later.",
            503: "The collection service is temporarily unavailable. Please try again later.",
            504: "The collection service took too long to respond. Please try again.",
        }
        return messages.get(status_code, f"HTTP error {status_code} occurred.")

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        """Log error with full technical details."""
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error

        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            recoverable=error.recoverable,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Get up to ``count`` most recent errors, oldest first."""
        recent = self._error_history[-count:] if self._error_history else []
        return [error for _, error in recent]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        """Get count of errors by category."""
        counts: dict[ErrorCategory, int] = {}
        for _, error in self._error_history:
            counts[error.category] = counts.get(error.category, 0) + 1
        return counts

    def create_user_message(
        self,
        error: UserFriendlyError,
        include_suggestions: bool = True,
    ) -> str:
        """Create a formatted user message from an error.

        Args:
            error: The user-friendly error
            include_suggestions: Whether to include suggested actions

        Returns:
            Formatted message string
        """
        parts = [error.message]

        if include_suggestions and error.suggested_actions:
            parts.append("\nSuggested actions:")
            for action in error.suggested_actions[:3]:
                parts.append(f"  • {action}")

        return "\n".join(parts)


_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> UserFriendlyError:
    """Convenience function to handle errors using the global service."""
    return get_error_service().handle_error(error, operation, component, context)
