"""
Shared infrastructure for the PredictX client.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- exceptions: Base exception classes and the API error taxonomy
- http: Generic JSON request helper over httpx

Note: Session and auth logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .exceptions import (
    PredictXError,
    ApiError,
    NetworkError,
    AuthenticationError,
)
from .http import ApiClient, create_idempotency_key, unwrap_envelope

__all__ = [
    "Settings",
    "get_settings",
    "PredictXError",
    "ApiError",
    "NetworkError",
    "AuthenticationError",
    "ApiClient",
    "create_idempotency_key",
    "unwrap_envelope",
]
