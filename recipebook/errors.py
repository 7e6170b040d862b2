"""
Error taxonomy for the recipe core.

Stores and auth providers raise these exceptions; the state container is the
only layer that catches them and turns them into a user-facing error string.

- ValidationError: caller-supplied data violates a precondition (blank field, missing id)
- NotFoundError: operation targets a recipe or user that does not exist
- StoreError: backend unreachable or failed transiently
- AuthError: categorized authentication failure (see AuthErrorCode)
"""

from enum import Enum
from typing import Optional


class RecipeBookError(Exception):
    """Base class for all errors raised by the recipe core."""
    pass


class ValidationError(RecipeBookError):
    """
    Raised when caller-supplied data violates a precondition.

    Not to be confused with pydantic.ValidationError, which is converted into
    this class at the model boundary.
    """
    pass


class NotFoundError(RecipeBookError):
    """Raised when an operation targets an id that does not exist."""

    def __init__(self, entity: str, entity_id: Optional[str]):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class StoreError(RecipeBookError):
    """Raised when the storage backend is unavailable or fails."""
    pass


class AuthErrorCode(str, Enum):
    """Structured auth failure categories."""
    NOT_REGISTERED = "not_registered"
    WRONG_PASSWORD = "wrong_password"
    MALFORMED_EMAIL = "malformed_email"
    EMAIL_IN_USE = "email_in_use"
    WEAK_PASSWORD = "weak_password"
    UNKNOWN = "unknown"


# Human-readable messages shown by the state container
AUTH_ERROR_MESSAGES = {
    AuthErrorCode.NOT_REGISTERED: "User is not registered",
    AuthErrorCode.WRONG_PASSWORD: "Incorrect password",
    AuthErrorCode.MALFORMED_EMAIL: "Invalid email address",
    AuthErrorCode.EMAIL_IN_USE: "An account with this email already exists",
    AuthErrorCode.WEAK_PASSWORD: "Password is too short",
    AuthErrorCode.UNKNOWN: "Authentication failed",
}


class AuthError(RecipeBookError):
    """
    Raised by auth providers on register/login failures.

    Attributes:
        code: AuthErrorCode describing the failure category
    """

    def __init__(self, code: AuthErrorCode, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        message = AUTH_ERROR_MESSAGES.get(code, AUTH_ERROR_MESSAGES[AuthErrorCode.UNKNOWN])
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
