"""
Authentication module.

Handles the persistent session, user profile normalization, and
authenticated requests with transparent token refresh.

Public API:
- IAuthClient, ISessionStore: Interfaces for auth and session operations
- AuthClient: Facade for login, refresh, logout and profile updates
- SessionStore: Persistent session with change notifications
- NormalizedUser, Session: Canonical user and session models
- normalize_user, merge_users: Profile normalization
- Auth exceptions: MissingRefreshTokenError, MissingUserError, StorageError
"""

from .interfaces import IAuthClient, ISessionStore
from .models import AuthEvent, AuthEventType, NormalizedUser, Session
from .exceptions import MissingRefreshTokenError, MissingUserError, StorageError
from .normalizer import extract_session, merge_users, normalize_user
from .roles import has_role, is_admin_l1, is_admin_l2, is_admin_l3, normalize_roles
from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .store import UNSET, SessionStore
from .client import AuthClient, get_auth_client, reset_auth_client

__all__ = [
    # Interfaces
    "IAuthClient",
    "ISessionStore",
    # Implementations
    "AuthClient",
    "SessionStore",
    "get_auth_client",
    "reset_auth_client",
    "UNSET",
    # Storage
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    # Models
    "NormalizedUser",
    "Session",
    "AuthEvent",
    "AuthEventType",
    # Normalization
    "normalize_user",
    "merge_users",
    "extract_session",
    # Roles
    "normalize_roles",
    "has_role",
    "is_admin_l1",
    "is_admin_l2",
    "is_admin_l3",
    # Exceptions
    "MissingRefreshTokenError",
    "MissingUserError",
    "StorageError",
]
