"""
Persistent session store.

Sole authority for reading and writing the Session. Storage failures
never reach callers of the public API: a field that cannot be read is
treated as absent, and a write that fails still returns the resolved
session for the current call. Every mutation is announced to
subscribers synchronously, in subscription order, within this process.
"""

import json
import logging
import threading
from typing import Any, Callable, Optional

from shared.config import get_settings

from .exceptions import StorageError
from .models import AuthEvent, AuthEventType, NormalizedUser, Session
from .normalizer import merge_users, normalize_user
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent], None]


class _Unset:
    """Marker for a field omitted from set_session (None means delete)."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class SessionStore:
    """
    Reads and writes the access token, refresh token and user.

    Args:
        storage: Backend holding the three keys
        prefix: Key namespace; defaults to settings.session_storage_prefix
    """

    def __init__(self, storage: KeyValueStorage, prefix: Optional[str] = None):
        self._storage = storage
        prefix = prefix or get_settings().session_storage_prefix
        self.access_key = f"{prefix}_access_token"
        self.refresh_key = f"{prefix}_refresh_token"
        self.user_key = f"{prefix}_user"
        self._lock = threading.RLock()
        self._listeners: list[AuthListener] = []

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_session(self) -> Session:
        """
        Read the session, raising on the first storage failure.

        Raises:
            StorageError: If any key cannot be read or the stored user
                          is not valid JSON
        """
        with self._lock:
            access_token = self._storage.get(self.access_key)
            refresh_token = self._storage.get(self.refresh_key)
            raw_user = self._storage.get(self.user_key)
        return Session(
            access_token=access_token,
            refresh_token=refresh_token,
            user=self._decode_user(raw_user),
        )

    def get_session(self) -> Session:
        """Read the session; unreadable fields are reported as absent."""
        with self._lock:
            access_token = self._safe_get(self.access_key)
            refresh_token = self._safe_get(self.refresh_key)
            raw_user = self._safe_get(self.user_key)

        try:
            user = self._decode_user(raw_user)
        except StorageError as e:
            logger.warning(f"Ignoring stored user: {e.message}")
            user = None

        return Session(access_token=access_token, refresh_token=refresh_token, user=user)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def set_session(
        self,
        access_token: Any = UNSET,
        refresh_token: Any = UNSET,
        user: Any = UNSET,
        replace_user: bool = False,
    ) -> Session:
        """
        Merge the given fields into the stored session.

        Omitted fields keep their stored value, None deletes the field.
        Tokens replace the stored ones; a user (raw mapping or
        NormalizedUser) is normalized and merged over the stored user,
        or stored as-is when ``replace_user`` is set (a new sign-in).
        The three keys are written with one storage update.

        Returns:
            The fully resolved new session
        """
        with self._lock:
            existing = self.get_session()

            resolved_access = existing.access_token if access_token is UNSET else access_token
            resolved_refresh = existing.refresh_token if refresh_token is UNSET else refresh_token
            if user is UNSET:
                resolved_user = existing.user
            elif user is None:
                resolved_user = None
            elif replace_user:
                resolved_user = normalize_user(user)
            else:
                resolved_user = merge_users(existing.user, normalize_user(user))

            session = Session(
                access_token=resolved_access or None,
                refresh_token=resolved_refresh or None,
                user=resolved_user,
            )

            try:
                self._storage.update(
                    {
                        self.access_key: session.access_token,
                        self.refresh_key: session.refresh_token,
                        self.user_key: self._encode_user(session.user),
                    }
                )
            except StorageError as e:
                logger.warning(f"Session not persisted: {e.message}")

        logger.debug(
            f"Session updated (authenticated={session.is_authenticated}, "
            f"user={session.user.id if session.user else None})"
        )
        self._notify(AuthEvent(type=AuthEventType.UPDATED, session=session))
        return session

    def clear_session(self) -> None:
        """Delete all three keys. Safe to call when already empty."""
        with self._lock:
            try:
                self._storage.update(
                    {self.access_key: None, self.refresh_key: None, self.user_key: None}
                )
            except StorageError as e:
                logger.warning(f"Session not cleared from storage: {e.message}")

        logger.info("Session cleared")
        self._notify(AuthEvent(type=AuthEventType.CLEARED, session=Session()))

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a listener for session mutations.

        Returns:
            A function that removes the listener; calling it twice is a no-op
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Auth listener failed")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _safe_get(self, key: str) -> Optional[str]:
        try:
            return self._storage.get(key)
        except StorageError as e:
            logger.warning(f"Treating {key} as absent: {e.message}")
            return None

    @staticmethod
    def _decode_user(raw: Optional[str]) -> Optional[NormalizedUser]:
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError("read", f"corrupt user record: {e}") from e
        return normalize_user(data)

    @staticmethod
    def _encode_user(user: Optional[NormalizedUser]) -> Optional[str]:
        if user is None:
            return None
        return json.dumps(user.resolved_fields(), default=str)
