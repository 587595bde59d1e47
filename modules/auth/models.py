"""
Authentication module data models.

These models define the session state owned by the session store and
the canonical user record produced by the normalizer.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NormalizedUser(BaseModel):
    """
    Canonical identity/profile record.

    Built by ``normalize_user`` from whatever shape the backend returns.
    Unrecognized input fields are kept as extras so future consumers can
    read them without a normalizer change. Fields resolved from the
    payload are tracked in ``model_fields_set``; the rest carry defaults.
    """

    model_config = ConfigDict(extra="allow")

    # Identity
    id: Optional[str] = Field(None, description="User ID (first matching server id field)")
    email: str = ""
    username: str = ""
    name: str = ""
    full_name: str = ""
    avatar_url: str = ""

    # Authorization
    role: str = Field(default="user", description="Primary role")
    roles: list[str] = Field(
        default_factory=lambda: ["user"],
        description="Unique role names, primary role first",
    )
    admin_level: int = 0

    # Account state
    balance: float = 0
    email_confirmed: Optional[bool] = None
    two_factor_enabled: Optional[bool] = None

    # Contact / KYC
    cpf: str = ""
    phone_number: str = ""
    address_zip: str = ""
    address_street: str = ""
    address_neighborhood: str = ""
    address_number: str = ""
    address_complement: str = ""
    address_city: str = ""
    address_state: str = ""
    address_country: str = ""

    # Payment
    pix_key: str = ""

    def resolved_fields(self) -> dict[str, Any]:
        """Fields that came from the payload, plus passed-through extras."""
        declared = type(self).model_fields
        data = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in declared
        }
        data.update(self.model_extra or {})
        return data


class Session(BaseModel):
    """Client-side authentication state."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[NormalizedUser] = None

    model_config = {"frozen": True}

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


class AuthEventType(str, Enum):
    """Kinds of session mutation delivered to store subscribers."""

    UPDATED = "updated"
    CLEARED = "cleared"


class AuthEvent(BaseModel):
    """Notification delivered synchronously after every session mutation."""

    type: AuthEventType
    session: Session

    model_config = {"frozen": True}
