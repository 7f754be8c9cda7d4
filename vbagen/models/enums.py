"""
Enum definitions for the application.

These enums are used across models, services and exceptions.
"""

from enum import Enum


class MessageRole(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class GateState(str, Enum):
    """
    Gating controller state.

    IDLE = No privileged action pending
    AWAITING_AUTH = Waiting for the user to sign in
    AWAITING_KEY = Signed in, waiting for a generation API key
    READY = Preconditions met, the pending action is being executed
    """

    IDLE = "IDLE"
    AWAITING_AUTH = "AWAITING_AUTH"
    AWAITING_KEY = "AWAITING_KEY"
    READY = "READY"


class WorkbookOperation(str, Enum):
    """Kind of instructional workbook to render."""

    CREATE_VBA = "create_vba"  # emit-code
    ADD_FORMULA = "add_formula"  # emit-formula
    ADD_BUTTON = "add_button"  # emit-control


class AuthErrorReason(str, Enum):
    """Classified authentication failure."""

    INVALID_CREDENTIALS = "invalid-credentials"
    RATE_LIMITED = "rate-limited"
    NETWORK = "network"
    NOT_AUTHENTICATED = "not-authenticated"
    ACCOUNT_EXISTS = "account-exists"


class ProfileErrorReason(str, Enum):
    """Classified profile record failure."""

    NOT_FOUND = "not-found"
    WRITE_CONFLICT = "write-conflict"


class GenerationErrorReason(str, Enum):
    """Classified code generation failure."""

    INVALID_KEY = "invalid-key"
    QUOTA_EXCEEDED = "quota-exceeded"
    MALFORMED_RESPONSE = "malformed-response"
    NETWORK = "network"


class ValidationErrorReason(str, Enum):
    """Classified payload validation failure."""

    MISSING_FIELD = "missing-field"
    WRONG_TYPE = "wrong-type"
