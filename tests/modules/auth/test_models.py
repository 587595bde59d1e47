"""Tests for modules/auth/models.py."""

import pytest

from modules.auth.models import AuthEvent, AuthEventType, NormalizedUser, Session


class TestNormalizedUser:
    def test_defaults(self):
        """NormalizedUser should have sensible defaults."""
        user = NormalizedUser()
        assert user.id is None
        assert user.role == "user"
        assert user.roles == ["user"]
        assert user.balance == 0
        assert user.address_country == ""

    def test_roles_default_not_shared(self):
        """Each user should get its own roles list."""
        first, second = NormalizedUser(), NormalizedUser()
        first.roles.append("beta")
        assert second.roles == ["user"]

    def test_extra_fields_allowed(self):
        """Unknown fields should be kept as extras."""
        user = NormalizedUser(id="u1", favoriteColor="blue")
        assert user.model_extra == {"favoriteColor": "blue"}

    def test_resolved_fields(self):
        """resolved_fields should list only explicitly set fields and extras."""
        user = NormalizedUser(id="u1", email="a@b.c", theme="dark")
        assert user.resolved_fields() == {"id": "u1", "email": "a@b.c", "theme": "dark"}


class TestSession:
    def test_empty_session(self):
        """An empty session should not be authenticated."""
        session = Session()
        assert session.user is None
        assert not session.is_authenticated

    def test_authenticated(self):
        """A session with an access token should be authenticated."""
        assert Session(access_token="tok").is_authenticated

    def test_session_is_immutable(self):
        """Session should be immutable."""
        session = Session(access_token="tok")
        with pytest.raises(Exception):  # Pydantic ValidationError
            session.access_token = "other"


class TestAuthEvent:
    def test_event(self):
        """AuthEvent should carry its type and session."""
        event = AuthEvent(type=AuthEventType.CLEARED, session=Session())
        assert event.type == AuthEventType.CLEARED
        assert event.type.value == "cleared"
        assert event.session.access_token is None
