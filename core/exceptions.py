"""
Custom exceptions with structured error context.

This module provides the exception hierarchy used across the service.
Each exception carries context information for debugging and monitoring,
and API errors carry the HTTP status they map to.

Exception Hierarchy:
    SuflateException (base)
    ├── IntegrationError
    │   ├── LinkedInError
    │   ├── TranscriptionError
    │   ├── GenerationError
    │   └── EmailDeliveryError
    ├── StorageError
    ├── PublishError
    ├── APIError
    │   ├── BadRequestError (400)
    │   ├── UnauthorizedError (401)
    │   ├── InsufficientCreditsError (402)
    │   ├── ForbiddenError (403)
    │   ├── NotFoundError (404)
    │   └── ConflictError (409)
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SuflateException(Exception):
    """
    Base exception for all service errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (ids, urls, status codes)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Integration Errors
# ============================================================================

class IntegrationError(SuflateException):
    """Base exception for third-party API failures."""
    pass


class LinkedInError(IntegrationError):
    """
    Exception raised when a LinkedIn API call fails.

    Context should include:
        - url: The endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated)
    """
    pass


class TranscriptionError(IntegrationError):
    """
    Exception raised when speech-to-text fails.

    Context should include:
        - transcript_id: AssemblyAI transcript id (if one was created)
        - status: Last polled status
    """
    pass


class GenerationError(IntegrationError):
    """
    Exception raised when the LLM call fails or returns unusable output.

    Context should include:
        - model: Model identifier
        - status_code: HTTP status code (if applicable)
    """
    pass


class EmailDeliveryError(IntegrationError):
    """Exception raised when an email could not be sent."""
    pass


class StorageError(SuflateException):
    """Exception raised when audio file storage fails."""
    pass


class PublishError(SuflateException):
    """
    Exception raised while processing a scheduled post.

    Context should include:
        - scheduled_post_id: Id of the scheduled_posts row
        - post_id: Id of the post being published
    """
    pass


# ============================================================================
# API Errors (mapped to HTTP responses)
# ============================================================================

class APIError(SuflateException):
    """Base exception for errors returned to API callers."""
    status_code = 500


class BadRequestError(APIError):
    status_code = 400


class UnauthorizedError(APIError):
    status_code = 401


class InsufficientCreditsError(APIError):
    """Raised when a workspace has too few credits for an operation."""
    status_code = 402


class ForbiddenError(APIError):
    status_code = 403


class NotFoundError(APIError):
    status_code = 404


class ConflictError(APIError):
    status_code = 409


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(SuflateException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(SuflateException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    """
    pass


class NetworkError(RetryableError, IntegrationError):
    """Network-related errors that should be retried."""
    pass


class RateLimitError(RetryableError, IntegrationError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, IntegrationError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    pass


class ResourceNotFoundError(NonRetryableError, IntegrationError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    pass
