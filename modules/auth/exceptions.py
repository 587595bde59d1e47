"""
Authentication module exceptions.

These are synthesized locally, without a network round-trip, so that
calling code can special-case them by their fixed machine codes.
"""

from shared.exceptions import AuthenticationError, PredictXError


class MissingRefreshTokenError(AuthenticationError):
    """Raised when a refresh is attempted with no refresh token stored."""

    def __init__(self, message: str = "No refresh token available"):
        super().__init__(message, code="missing_refresh_token")


class MissingUserError(AuthenticationError):
    """Raised when a user update is attempted with no user in session."""

    def __init__(self, message: str = "No user in session."):
        super().__init__(message, code="missing_user")


class StorageError(PredictXError):
    """Raised by a storage backend when it cannot be read or written."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Session storage {operation} failed: {reason}",
            code="STORAGE_ERROR",
            details={"operation": operation, "reason": reason},
        )
