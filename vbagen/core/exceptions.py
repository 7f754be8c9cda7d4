"""
Custom exceptions for the application.

Every failure surfaced by a store, backend or service carries a classified
``reason`` so callers can decide what to show the user.
"""

from typing import Any, Optional

from vbagen.models.enums import (
    AuthErrorReason,
    GenerationErrorReason,
    ProfileErrorReason,
    ValidationErrorReason,
)


class VbaGenError(Exception):
    """Base exception for vbagen."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(VbaGenError):
    """Resource not found."""

    pass


class AuthError(VbaGenError):
    """Authentication failed."""

    def __init__(
        self,
        reason: AuthErrorReason,
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(message or reason.value, details={"reason": reason.value})
        self.reason = reason
        self.retry_after = retry_after


class ProfileError(VbaGenError):
    """Profile record could not be read or written."""

    def __init__(self, reason: ProfileErrorReason, message: Optional[str] = None):
        super().__init__(message or reason.value, details={"reason": reason.value})
        self.reason = reason


class GenerationError(VbaGenError):
    """Code generation failed."""

    def __init__(self, reason: GenerationErrorReason, message: Optional[str] = None):
        super().__init__(message or reason.value, details={"reason": reason.value})
        self.reason = reason


class ValidationError(VbaGenError):
    """Payload validation error."""

    def __init__(
        self,
        reason: ValidationErrorReason,
        field: str,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"{field}: {reason.value}",
            details={"reason": reason.value, "field": field},
        )
        self.reason = reason
        self.field = field


class GatingError(VbaGenError):
    """A privileged action was requested while another one is still pending."""

    pass


class ConflictError(VbaGenError):
    """A concurrent write kept colliding with another one."""

    pass


class InfrastructureError(VbaGenError):
    """A remote service could not be reached or answered with a server error."""

    pass
