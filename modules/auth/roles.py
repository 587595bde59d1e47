"""
Role hierarchy helpers.

The backend grants one of USER, ADMIN_L1, ADMIN_L2, ADMIN_L3. Higher admin
levels imply the lower ones, and the legacy "admin" role maps to ADMIN_L3.
Inputs may be a user-like mapping, a list of role names or a single name.
"""

from collections.abc import Mapping
from typing import Any

ROLE_LEVELS: dict[str, int] = {
    "USER": 0,
    "ADMIN_L1": 1,
    "ADMIN_L2": 2,
    "ADMIN_L3": 3,
}

LEGACY_ADMIN = "admin"


def _collect(input: Any) -> tuple[list[str], bool]:
    """Return (candidate role names, legacy admin seen)."""
    values: list[str] = []
    if isinstance(input, str):
        values = [input]
    elif isinstance(input, (list, tuple, set, frozenset)):
        values = list(input)
    elif isinstance(input, Mapping):
        roles = input.get("roles")
        if isinstance(roles, (list, tuple, set, frozenset)):
            values.extend(roles)
        if isinstance(input.get("role"), str):
            values.append(input["role"])

    names: list[str] = []
    legacy_admin = False
    for value in values:
        if not isinstance(value, str) or not value.strip():
            continue
        if value.strip().lower() == LEGACY_ADMIN:
            legacy_admin = True
        else:
            names.append(value.strip().upper())
    return names, legacy_admin


def _explicit_admin_level(input: Any) -> int:
    if not isinstance(input, Mapping):
        return 0
    for key in ("admin_level", "adminLevel"):
        value = input.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0


def normalize_roles(input: Any = None) -> list[str]:
    """
    Resolve the canonical role list, highest level first.

    Unknown role names are ignored. When no known role is found, an
    explicit admin level (clamped to 1..3) or the legacy admin flag is
    used; otherwise the result is ["USER"].
    """
    names, legacy_admin = _collect(input)
    known = [name for name in names if name in ROLE_LEVELS]

    if not known:
        admin_level = _explicit_admin_level(input)
        if admin_level > 0:
            known.append(f"ADMIN_L{min(3, max(1, admin_level))}")
        elif legacy_admin:
            known.append("ADMIN_L3")

    expanded: set[str] = set()
    for name in known:
        level = ROLE_LEVELS[name]
        expanded.update(role for role, lvl in ROLE_LEVELS.items() if 0 < lvl <= level)
        expanded.add(name)

    if not expanded:
        expanded.add("USER")

    return sorted(expanded, key=lambda role: ROLE_LEVELS[role], reverse=True)


def role_level(input: Any = None) -> int:
    """Highest role level granted by the input (0 for plain users)."""
    return max(ROLE_LEVELS[role] for role in normalize_roles(input))


def has_role(input: Any, role: str) -> bool:
    return role.upper() in normalize_roles(input)


def is_admin_l1(input: Any = None) -> bool:
    return role_level(input) >= 1


def is_admin_l2(input: Any = None) -> bool:
    return role_level(input) >= 2


def is_admin_l3(input: Any = None) -> bool:
    return role_level(input) >= 3
