"""
User profile normalization.

The backend returns users in several shapes: snake_case or camelCase
fields, flat address/KYC fields or nested ``personalData.address`` and
``personalData.bankAccount`` objects. ``normalize_user`` maps all of them
onto ``NormalizedUser``.

Each field is resolved by an ordered tuple of candidate extractors in
``FIELD_RULES``; the first candidate yielding a non-empty value wins.
Flat fields always come before nested ones, which keeps normalization
idempotent: a normalized user re-resolves every field to itself.
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional

from .models import NormalizedUser
from .roles import role_level

Extractor = Callable[["_Sources"], Any]


class _Sources:
    """The raw payload plus its nested sections, looked up once."""

    def __init__(self, raw: Mapping[str, Any]):
        self.raw = raw
        self.personal = _section(raw.get("personalData")) or _section(raw.get("personal_data"))
        self.address = _section(self.personal.get("address")) or _section(raw.get("address"))
        self.bank = (
            _section(self.personal.get("bankAccount"))
            or _section(raw.get("bankAccount"))
            or _section(raw.get("bank_account"))
        )


def _section(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _flat(key: str) -> Extractor:
    return lambda src: src.raw.get(key)


def _personal(key: str) -> Extractor:
    return lambda src: src.personal.get(key)


def _address(key: str) -> Extractor:
    return lambda src: src.address.get(key)


def _bank(key: str) -> Extractor:
    return lambda src: src.bank.get(key)


def _joined_name(src: _Sources) -> str:
    first = src.raw.get("first_name") or src.raw.get("firstName") or ""
    last = src.raw.get("last_name") or src.raw.get("lastName") or ""
    return " ".join(part for part in (first, last) if part).strip()


FIELD_RULES: dict[str, tuple[Extractor, ...]] = {
    "id": tuple(_flat(key) for key in ("id", "userId", "_id", "uid", "sub", "email")),
    "email": (_flat("email"),),
    "username": (_flat("username"), _flat("userName")),
    "full_name": (_flat("full_name"), _flat("fullName"), _flat("name"), _joined_name),
    "name": (_flat("name"), _flat("full_name"), _flat("fullName"), _joined_name),
    "avatar_url": (_flat("avatar_url"), _flat("avatarUrl")),
    "cpf": (_flat("cpf"), _personal("cpf")),
    "phone_number": (_flat("phone_number"), _flat("phoneNumber"), _personal("phoneNumber")),
    "address_zip": (_flat("address_zip"), _address("zipCode")),
    "address_street": (_flat("address_street"), _address("street")),
    "address_neighborhood": (
        _flat("address_neighborhood"),
        _address("neighborhood"),
        _address("Neighborhood"),
        _address("bairro"),
    ),
    "address_number": (_flat("address_number"), _address("number")),
    "address_complement": (
        _flat("address_complement"),
        _address("complement"),
        _address("complemento"),
    ),
    "address_city": (_flat("address_city"), _address("city")),
    "address_state": (_flat("address_state"), _address("state")),
    "address_country": (_flat("address_country"), _address("country")),
    "pix_key": (_flat("pix_key"), _bank("pixKey")),
}

BOOLEAN_RULES: dict[str, tuple[str, ...]] = {
    "email_confirmed": ("email_confirmed", "emailConfirmed", "isEmailConfirmed"),
    "two_factor_enabled": (
        "two_factor_enabled",
        "twoFactorEnabled",
        "is2faEnabled",
        "isTwoFactorEnabled",
    ),
}


def _resolve(rules: tuple[Extractor, ...], src: _Sources) -> Any:
    for extract in rules:
        value = extract(src)
        if _present(value):
            return value
    return None


def _resolve_bool(keys: tuple[str, ...], raw: Mapping[str, Any]) -> Optional[bool]:
    for key in keys:
        if isinstance(raw.get(key), bool):
            return raw[key]
    return None


def resolve_flags(raw: Mapping[str, Any]) -> dict[str, bool]:
    """Email-confirmation and 2FA flags present in raw, by canonical name."""
    flags: dict[str, bool] = {}
    for field, keys in BOOLEAN_RULES.items():
        value = _resolve_bool(keys, raw)
        if value is not None:
            flags[field] = value
    return flags


def _resolve_roles(raw: Mapping[str, Any]) -> list[str]:
    listed = raw.get("roles")
    candidates = list(listed) if isinstance(listed, (list, tuple)) else []
    if isinstance(raw.get("role"), str):
        candidates.append(raw["role"])

    roles: list[str] = []
    for value in candidates:
        if isinstance(value, str) and value and value not in roles:
            roles.append(value)
    return roles


def _resolve_admin_level(raw: Mapping[str, Any]) -> int:
    explicit = 0
    for key in ("admin_level", "adminLevel"):
        value = raw.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            explicit = value
            break
    return max(explicit, role_level(raw))


def normalize_user(raw: Any) -> Optional[NormalizedUser]:
    """
    Map a raw server (or stored) user payload onto NormalizedUser.

    Args:
        raw: A mapping in any supported shape, an already normalized
             user, or anything else

    Returns:
        NormalizedUser, or None when raw is None or not a mapping
    """
    if isinstance(raw, NormalizedUser):
        raw = raw.resolved_fields()
    if not isinstance(raw, Mapping):
        return None

    src = _Sources(raw)
    resolved: dict[str, Any] = {}

    for field, rules in FIELD_RULES.items():
        value = _resolve(rules, src)
        if value is not None:
            resolved[field] = value if isinstance(value, str) else str(value)

    resolved.update(resolve_flags(raw))

    roles = _resolve_roles(raw)
    if roles:
        resolved["roles"] = roles
        resolved["role"] = roles[0]

    admin_level = _resolve_admin_level(raw)
    if admin_level or "admin_level" in raw or "adminLevel" in raw:
        resolved["admin_level"] = admin_level

    balance = raw.get("balance")
    if isinstance(balance, (int, float)) and not isinstance(balance, bool):
        resolved["balance"] = balance

    declared = NormalizedUser.model_fields
    extras = {key: value for key, value in raw.items() if key not in declared}
    return NormalizedUser.model_validate({**extras, **resolved})


def merge_users(
    base: Optional[NormalizedUser],
    incoming: Optional[NormalizedUser],
) -> Optional[NormalizedUser]:
    """
    Shallow union of two users, incoming fields taking precedence.

    Fields the incoming user did not resolve (e.g. a partial update
    response that omits the address) keep the base user's values.
    """
    if base is None or incoming is None:
        return incoming
    return NormalizedUser.model_validate(
        {**base.resolved_fields(), **incoming.resolved_fields()}
    )


_TOKEN_KEYS = ("accessToken", "access_token", "token")
_REFRESH_KEYS = ("refreshToken", "refresh_token")
_USER_KEYS = ("user", "profile", "account")
_USER_MARKERS = ("id", "email", "username", "userName", "name", "full_name", "fullName")


def _pick(obj: Any, *keys: str) -> Any:
    if not isinstance(obj, Mapping):
        return None
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def looks_like_user(obj: Any) -> bool:
    return isinstance(obj, Mapping) and any(key in obj for key in _USER_MARKERS)


def extract_session(data: Any) -> dict[str, Any]:
    """
    Pull tokens and a raw user out of an auth response.

    Tolerates several backend shapes: tokens at the root or under
    ``data``; the user under ``user``/``profile``/``account`` (at the root
    or under ``data``), or else the first of ``data``, ``result`` and the
    root object that looks like a user, minus any token fields.

    Returns:
        Dict with access_token, refresh_token and user (raw), each
        possibly None
    """
    if not isinstance(data, Mapping):
        return {"access_token": None, "refresh_token": None, "user": None}

    nested = data.get("data")
    access_token = _pick(data, *_TOKEN_KEYS) or _pick(nested, *_TOKEN_KEYS)
    refresh_token = _pick(data, *_REFRESH_KEYS) or _pick(nested, *_REFRESH_KEYS)

    user = _pick(data, *_USER_KEYS) or _pick(nested, *_USER_KEYS)
    if user is None:
        for candidate in (nested, data.get("result"), data):
            if looks_like_user(candidate):
                user = {
                    key: value
                    for key, value in candidate.items()
                    if key not in _TOKEN_KEYS and key not in _REFRESH_KEYS
                }
                break

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "user": user if isinstance(user, Mapping) else None,
    }
