"""
Authentication module interface.

Calling code should depend on IAuthClient and ISessionStore, not the
concrete implementations. This enables testing with mocks and swapping
the storage backend.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .models import AuthEvent, NormalizedUser, Session


@runtime_checkable
class ISessionStore(Protocol):
    """Interface for the persistent session store."""

    def get_session(self) -> Session:
        """Return the current session; never raises."""
        ...

    def set_session(
        self,
        access_token: Any = ...,
        refresh_token: Any = ...,
        user: Any = ...,
        replace_user: bool = False,
    ) -> Session:
        """
        Merge fields into the session and notify subscribers.

        Omitted fields are kept, None deletes a field.

        Returns:
            The resolved session
        """
        ...

    def clear_session(self) -> None:
        """Delete the session and notify subscribers."""
        ...

    def subscribe(self, listener: Callable[[AuthEvent], None]) -> Callable[[], None]:
        """Register a listener; returns the matching unsubscribe function."""
        ...


@runtime_checkable
class IAuthClient(Protocol):
    """
    Interface for session and profile operations.

    All methods return normalized results or raise ApiError,
    MissingRefreshTokenError or MissingUserError.
    """

    async def login(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Returns:
            The new session

        Raises:
            ApiError: If the credentials are rejected
        """
        ...

    async def login_with_google(self, id_token: str) -> Session:
        """Sign in with a Google OAuth ID token."""
        ...

    async def refresh(self) -> Session:
        """
        Exchange the stored refresh token for a new access token.

        Raises:
            MissingRefreshTokenError: If no refresh token is stored
            ApiError: If the backend rejects the refresh token
        """
        ...

    async def logout(self) -> None:
        """Invalidate the refresh token server-side (best effort) and clear the session."""
        ...

    async def get_profile(self) -> Optional[NormalizedUser]:
        """Fetch the current user and merge it into the session."""
        ...

    async def update_user(self, updates: dict[str, Any]) -> NormalizedUser:
        """
        Apply a flat set of user changes.

        Server-recognized fields go to the profile, address and avatar
        endpoints in that order; everything else is stored locally.

        Raises:
            MissingUserError: If no user is in session
        """
        ...
