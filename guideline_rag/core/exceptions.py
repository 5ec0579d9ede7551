"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class GuidelineNotFoundError(AppError):
    """Raised when a carrier guideline row does not exist."""

    def __init__(self, guideline_id):
        super().__init__(f"Guideline not found: {guideline_id}")
        self.guideline_id = guideline_id


class InvalidStateTransitionError(AppError):
    """Raised when an operator action is not allowed from the current status."""

    def __init__(self, guideline_id, current_status: str, action: str):
        super().__init__(
            f"Cannot {action} guideline {guideline_id} while it is '{current_status}'"
        )
        self.guideline_id = guideline_id
        self.current_status = current_status
        self.action = action


class RegistrationError(AppError):
    """Raised when a guideline cannot be registered with the generative file API.

    The message is stored verbatim as the row's processing error, so it must
    be readable by an operator.
    """
    pass


class GenerationFailedError(AppError):
    """Raised when the generative model call fails or times out."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        timed_out: bool = False,
    ):
        super().__init__(message, original_error=original_error)
        self.timed_out = timed_out
