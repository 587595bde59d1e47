"""
Base exception classes for the PredictX client.

Each module should define its own exceptions that inherit from these bases.
HTTP failures are surfaced as ApiError so that calling code can map the
status and machine code to a user-facing message.
"""

from typing import Optional, Any


class PredictXError(Exception):
    """
    Base exception for all PredictX client errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logging or display."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ApiError(PredictXError):
    """
    A request to the backend failed.

    Carries the HTTP status (None when the request never completed),
    the server-supplied machine code and the raw response payload.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        payload: Any = None,
    ):
        super().__init__(message, code=code, details={"status": status})
        self.status = status
        self.payload = payload

    @classmethod
    def from_response(cls, status: int, payload: Any) -> "ApiError":
        """
        Build an error from a non-2xx response.

        The message is taken from, in order: a plain-string payload,
        ``detail``, ``message``, the first validation message in
        ``errors``, ``error.message``, ``title``.
        """
        body = payload if isinstance(payload, dict) else {}
        nested = body.get("error") if isinstance(body.get("error"), dict) else {}

        if isinstance(payload, str) and payload.strip():
            message = payload.strip()
        else:
            message = (
                body.get("detail")
                or body.get("message")
                or _first_validation_message(body.get("errors"))
                or nested.get("message")
                or body.get("title")
                or f"Request failed ({status})"
            )

        if isinstance(payload, str):
            code = payload.strip() or None
        else:
            code = (
                body.get("title")
                or body.get("code")
                or nested.get("code")
                or (body.get("error") if isinstance(body.get("error"), str) else None)
            )

        return cls(str(message), status=status, code=code, payload=payload)


class NetworkError(ApiError):
    """The request could not be completed (DNS, connection, timeout...)."""

    def __init__(self, message: str):
        super().__init__(message, status=None, code="network_error")


class AuthenticationError(PredictXError):
    """Authentication failed (invalid or missing credentials)."""

    pass


def _first_validation_message(errors: Any) -> Optional[str]:
    # ValidationProblemDetails: {"errors": {"Field": ["msg", ...]}}
    if not isinstance(errors, dict) or not errors:
        return None
    first = next(iter(errors.values()))
    if isinstance(first, list) and first:
        return str(first[0])
    if isinstance(first, str):
        return first
    return None
