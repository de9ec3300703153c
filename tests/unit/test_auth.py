"""Unit tests for identity providers (glowup/auth/identity.py)"""
import pytest

from glowup.auth.identity import StaticIdentity
from glowup.exceptions import AuthenticationError


def test_static_identity_returns_user():
    assert StaticIdentity("user-1").current_user_id() == "user-1"


@pytest.mark.parametrize("user_id", [None, ""])
def test_static_identity_without_session(user_id):
    with pytest.raises(AuthenticationError):
        StaticIdentity(user_id).current_user_id()
