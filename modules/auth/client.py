"""
Session & auth client.

AuthClient is the facade calling code uses: sign-in/out, token refresh
and profile updates. Underneath it sits the authenticated request layer
(``request_with_auth``), which adds the bearer token from the session
store and, on a 401, refreshes the token once and retries once.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional
from urllib.parse import quote, urlencode

from shared.config import get_settings
from shared.exceptions import ApiError, PredictXError
from shared.http import ApiClient, create_idempotency_key

from .exceptions import MissingRefreshTokenError, MissingUserError
from .interfaces import IAuthClient
from .models import NormalizedUser, Session
from .normalizer import extract_session, merge_users, normalize_user, resolve_flags
from .storage import FileStorage
from .store import SessionStore

logger = logging.getLogger(__name__)


# Keys of update_user() that the backend understands; everything else
# is applied to the session user locally.
SERVER_KEYS = frozenset(
    {
        "full_name",
        "fullName",
        "name",
        "username",
        "email",
        "password",
        "confirmPassword",
        "cpf",
        "phoneNumber",
        "phone_number",
        "address",
        "address_zip",
        "street",
        "neighborhood",
        "address_street",
        "address_neighborhood",
        "address_number",
        "address_complement",
        "address_city",
        "address_state",
        "address_country",
        "avatar_url",
        "avatarUrl",
    }
)

# No endpoint accepts bank details, so these keys only update the PIX key
# of the session user.
BANK_KEYS = frozenset({"pix_key", "bank_account_pix_key", "bankAccount", "bank_account"})

# Address payload field -> update_user() keys, most specific first.
# The first key also names the NormalizedUser attribute.
ADDRESS_FIELDS: dict[str, tuple[str, ...]] = {
    "zipCode": ("address_zip",),
    "street": ("address_street", "street"),
    "neighborhood": ("address_neighborhood", "neighborhood"),
    "number": ("address_number",),
    "complement": ("address_complement",),
    "city": ("address_city",),
    "state": ("address_state",),
    "country": ("address_country",),
}

DEFAULT_COUNTRY = "BR"


def _first_not_none(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def build_profile_payload(updates: Mapping[str, Any]) -> dict[str, Any]:
    """Body for PUT /users/me from the profile keys present in updates."""
    payload: dict[str, Any] = {}
    if any(key in updates for key in ("full_name", "fullName", "name")):
        payload["name"] = (
            _first_not_none(updates.get("full_name"), updates.get("fullName"), updates.get("name"))
            or ""
        )
    for key in ("username", "email"):
        if key in updates:
            payload[key] = updates[key] if updates[key] is not None else ""
    for key in ("password", "confirmPassword", "cpf"):
        if key in updates:
            payload[key] = updates[key]
    if "phoneNumber" in updates or "phone_number" in updates:
        payload["phoneNumber"] = _first_not_none(
            updates.get("phoneNumber"), updates.get("phone_number")
        )
    return payload


def build_address_payload(
    updates: Mapping[str, Any],
    user: NormalizedUser,
) -> Optional[dict[str, Any]]:
    """
    Body for PUT /users/me/address, or None when no address key is present.

    Each field comes from the nested ``address`` update, then the flat
    update keys, then the session user; the backend expects a full address.
    """
    nested = updates.get("address") if isinstance(updates.get("address"), Mapping) else {}
    flat_keys = {key for keys in ADDRESS_FIELDS.values() for key in keys}
    if "address" not in updates and not flat_keys.intersection(updates) and not nested:
        return None

    stored = user.model_extra.get("address") if user.model_extra else None
    stored = stored if isinstance(stored, Mapping) else {}

    payload: dict[str, Any] = {}
    for field, keys in ADDRESS_FIELDS.items():
        value = _first_not_none(nested.get(field), *(updates.get(key) for key in keys))
        if value is None:
            value = getattr(user, keys[0]) or stored.get(field)
        if value is None or value == "":
            value = DEFAULT_COUNTRY if field == "country" else ""
        payload[field] = value
    return payload


def _pix_key_change(updates: Mapping[str, Any]) -> Optional[str]:
    """The PIX key named by any bank key in updates, or None."""
    nested = [
        updates.get(key).get("pixKey")
        for key in ("bankAccount", "bank_account")
        if isinstance(updates.get(key), Mapping)
    ]
    return _first_not_none(updates.get("pix_key"), updates.get("bank_account_pix_key"), *nested)


def _avatar_change(updates: Mapping[str, Any], user: NormalizedUser) -> Optional[str]:
    """The new avatar URL, or None when it is absent, blank or unchanged."""
    if "avatar_url" not in updates and "avatarUrl" not in updates:
        return None
    value = _first_not_none(updates.get("avatar_url"), updates.get("avatarUrl"))
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    return value if value != (user.avatar_url or "") else None


class AuthClient(IAuthClient):
    """
    Implementation of the session & auth client.

    Args:
        store: Session store holding tokens and the current user
        api: JSON request helper bound to the backend base URL
    """

    def __init__(self, store: SessionStore, api: ApiClient):
        self._store = store
        self._api = api

    @property
    def store(self) -> SessionStore:
        return self._store

    def get_session(self) -> Session:
        return self._store.get_session()

    async def aclose(self) -> None:
        await self._api.aclose()

    # ------------------------------------------------------------------
    # Request layer
    # ------------------------------------------------------------------

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        """Unauthenticated request."""
        return await self._api.request(
            path, method=method, body=body, headers=headers, idempotency_key=idempotency_key
        )

    def _authorized_headers(self, headers: Optional[dict[str, str]]) -> dict[str, str]:
        access_token = self._store.get_session().access_token
        merged = dict(headers or {})
        if access_token:
            merged["Authorization"] = f"Bearer {access_token}"
        return merged

    async def request_with_auth(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
        allow_refresh: bool = True,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        """
        Authorized request with a single refresh-and-retry on 401.

        At most one refresh and one retry happen per call. When the
        refresh fails, the original 401 is raised with the refresh
        failure chained as its cause.

        Raises:
            ApiError: The request (or its retry) failed
        """
        try:
            return await self._api.request(
                path,
                method=method,
                body=body,
                headers=self._authorized_headers(headers),
                idempotency_key=idempotency_key,
            )
        except ApiError as error:
            if not allow_refresh or error.status != 401:
                raise
            if not self._store.get_session().refresh_token:
                raise
            logger.debug(f"{method} {path} returned 401, refreshing access token")
            try:
                await self.refresh()
            except PredictXError as refresh_error:
                raise error from refresh_error

        return await self._api.request(
            path,
            method=method,
            body=body,
            headers=self._authorized_headers(headers),
            idempotency_key=idempotency_key,
        )

    def _set_session_from_response(self, data: Any, replace_user: bool = False) -> Session:
        extracted = extract_session(data)
        fields = {key: value for key, value in extracted.items() if value is not None}
        if not fields:
            return self._store.get_session()
        if replace_user and "user" not in fields:
            # New credentials without a profile must not keep the previous user
            fields["user"] = None
        return self._store.set_session(**fields, replace_user=replace_user)

    # ------------------------------------------------------------------
    # Sign-in / sign-out
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        data = await self.request(
            "/auth/login", method="POST", body={"email": email, "password": password}
        )
        return await self._complete_sign_in(data)

    async def login_with_google(self, id_token: str) -> Session:
        data = await self.request("/auth/login/google", method="POST", body={"idToken": id_token})
        return await self._complete_sign_in(data)

    async def sign_up(self, payload: dict[str, Any]) -> Session:
        """Create an account; signs in when the backend returns tokens."""
        data = await self.request(
            "/auth/signup",
            method="POST",
            body=payload,
            idempotency_key=create_idempotency_key(),
        )
        return self._set_session_from_response(data, replace_user=True)

    async def _complete_sign_in(self, data: Any) -> Session:
        session = self._set_session_from_response(data, replace_user=True)
        logger.info(f"Signed in (user={session.user.id if session.user else None})")
        if session.user is not None:
            return session

        try:
            await self.get_profile()
        except PredictXError as e:
            logger.warning(f"Profile fetch after sign-in failed: {e.message}")
        return self._store.get_session()

    async def refresh(self) -> Session:
        refresh_token = self._store.get_session().refresh_token
        if not refresh_token:
            raise MissingRefreshTokenError()

        try:
            data = await self.request(
                "/auth/refresh", method="POST", body={"refreshToken": refresh_token}
            )
        except ApiError as e:
            if e.status is not None and 400 <= e.status < 500:
                logger.info(f"Refresh rejected ({e.status}), clearing session")
                self._store.clear_session()
            raise

        logger.debug("Access token refreshed")
        return self._set_session_from_response(data)

    async def logout(self) -> None:
        refresh_token = self._store.get_session().refresh_token
        try:
            await self.request_with_auth(
                "/auth/logout",
                method="POST",
                body={"refreshToken": refresh_token} if refresh_token else None,
                allow_refresh=False,
            )
        except PredictXError as e:
            logger.warning(f"Server-side logout failed: {e.message}")
        finally:
            self._store.clear_session()
        logger.info("Signed out")

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self) -> Optional[NormalizedUser]:
        data = await self.request_with_auth("/users/me")
        if not isinstance(data, Mapping):
            return None

        raw_user = data
        for key in ("user", "profile", "account"):
            if isinstance(data.get(key), Mapping):
                raw_user = data[key]
                break

        user = normalize_user(raw_user)
        if user is None:
            return None

        # Confirmation and 2FA flags may sit next to the user object
        flags = resolve_flags(data)
        if flags:
            user = normalize_user({**user.resolved_fields(), **flags})

        self._store.set_session(user=user)
        return user

    async def _put_user(self, path: str, payload: Any) -> Optional[NormalizedUser]:
        data = await self.request_with_auth(path, method="PUT", body=payload)
        user = normalize_user(data)
        if user is not None:
            self._store.set_session(user=user)
        return user

    async def update_profile(self, payload: dict[str, Any]) -> Optional[NormalizedUser]:
        return await self._put_user("/users/me", payload)

    async def update_address(self, payload: dict[str, Any]) -> Optional[NormalizedUser]:
        return await self._put_user("/users/me/address", payload)

    async def update_avatar(self, avatar_url: Optional[str]) -> Optional[NormalizedUser]:
        return await self._put_user("/users/me/avatar", {"avatarUrl": avatar_url})

    async def update_user(self, updates: dict[str, Any]) -> NormalizedUser:
        """
        Apply a flat set of user changes.

        Profile, address and avatar keys are sent to their endpoints in that
        order. Bank keys (``pix_key``, ``bankAccount``...) have no endpoint
        and set ``pix_key`` on the session user only, like any other
        unrecognized key.
        """
        current = self._store.get_session().user
        if current is None:
            raise MissingUserError()

        local_updates = {
            key: value
            for key, value in updates.items()
            if key not in SERVER_KEYS and key not in BANK_KEYS
        }
        pix_key = _pix_key_change(updates)
        if pix_key is not None:
            local_updates["pix_key"] = pix_key
        profile_payload = build_profile_payload(updates)
        address_payload = build_address_payload(updates, current)
        avatar_url = _avatar_change(updates, current)

        # Sequential: each response is merged into the base for the next step
        next_user = current
        if profile_payload:
            profile_payload.setdefault("name", current.full_name or current.name or "")
            profile_payload.setdefault("email", current.email or "")
            updated = await self.update_profile(profile_payload)
            next_user = merge_users(next_user, updated) or next_user

        if address_payload is not None:
            updated = await self.update_address(address_payload)
            next_user = merge_users(next_user, updated) or next_user

        if avatar_url is not None:
            updated = await self.update_avatar(avatar_url)
            next_user = merge_users(next_user, updated) or next_user

        if local_updates:
            next_user = normalize_user({**next_user.resolved_fields(), **local_updates})

        session = self._store.set_session(user=next_user)
        return session.user or next_user

    # ------------------------------------------------------------------
    # Account management
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> Any:
        return await self.request("/auth/forgot-password", method="POST", body={"email": email})

    async def reset_password(self, payload: dict[str, Any]) -> Any:
        return await self.request("/auth/reset-password", method="POST", body=payload)

    async def verify_reset_code(self, email: str, code: str) -> Any:
        return await self.request(
            "/auth/verify-reset-code",
            method="POST",
            body={"email": email, "resetCode": code},
        )

    async def verify_email(self, token: str) -> Any:
        return await self.request("/auth/verify-email", method="POST", body={"token": token})

    async def confirm_email(self, user_id: str, code: str) -> Any:
        query = urlencode({"userId": user_id, "code": code})
        return await self.request(f"/auth/confirm-email?{query}", method="POST")

    async def resend_confirmation_email(self, email: str) -> Any:
        return await self.request(
            "/auth/resend-confirmation-email", method="POST", body={"email": email}
        )

    async def change_password(
        self,
        old_password: str,
        new_password: str,
        confirm_password: Optional[str] = None,
    ) -> None:
        """Change the password, then refresh the profile (best effort)."""
        await self.request_with_auth(
            "/auth/manage/password",
            method="POST",
            body={
                "oldPassword": old_password,
                "newPassword": new_password,
                "confirmPassword": confirm_password if confirm_password is not None else new_password,
            },
        )
        try:
            await self.get_profile()
        except PredictXError as e:
            logger.warning(f"Profile refresh after password change failed: {e.message}")

    async def get_user_sessions(self) -> Any:
        return await self.request_with_auth("/users/me/sessions")

    async def revoke_user_session(self, session_id: str) -> Any:
        return await self.request_with_auth(
            f"/users/me/sessions/{quote(str(session_id), safe='')}", method="DELETE"
        )


# Module-level instance getter
_client_instance: Optional[AuthClient] = None


def get_auth_client() -> AuthClient:
    """Get the auth client singleton, persisting the session to disk."""
    global _client_instance
    if _client_instance is None:
        settings = get_settings()
        store = SessionStore(FileStorage(settings.session_file))
        _client_instance = AuthClient(store=store, api=ApiClient())
    return _client_instance


def reset_auth_client() -> None:
    """Reset the auth client singleton (for testing)."""
    global _client_instance
    _client_instance = None
