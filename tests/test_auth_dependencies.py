"""
Tests for session token verification and role-gated dependencies.
"""
from datetime import datetime, timedelta, timezone

import pydantic
import pytest
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt
from pydantic import SecretStr

from blog_cms.config import Settings, settings
from blog_cms.exceptions import AuthenticationError, ForbiddenError
from blog_cms.models.blog_models import Caller, UserRole
from blog_cms.routes.auth.dependencies import (
    decode_session_token,
    get_current_caller,
    get_optional_caller,
    require_role,
)

SECRET = "test-secret"


def make_token(claims, secret=SECRET):
    payload = {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def test_decode_reads_nested_role_claim():
    token = make_token({"sub": "user_1", "metadata": {"role": "editor"}})

    caller = decode_session_token(token, secret=SECRET)

    assert caller == Caller(user_id="user_1", role=UserRole.EDITOR)
    assert caller.is_editor


def test_decode_with_custom_role_claim():
    token = make_token({"sub": "user_1", "role": "viewer"})

    caller = decode_session_token(token, secret=SECRET, role_claim="role")

    assert caller.role == UserRole.VIEWER


def test_unknown_role_is_dropped():
    """A role outside editor/viewer leaves the caller authenticated but without a role."""
    token = make_token({"sub": "user_1", "metadata": {"role": "admin"}})

    caller = decode_session_token(token, secret=SECRET)

    assert caller.role is None


def test_bad_signature_is_rejected():
    token = make_token({"sub": "user_1"}, secret="other-secret")

    with pytest.raises(AuthenticationError):
        decode_session_token(token, secret=SECRET)


def test_expired_token_is_rejected():
    token = make_token({"sub": "user_1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)})

    with pytest.raises(AuthenticationError):
        decode_session_token(token, secret=SECRET)


def test_token_without_subject_is_rejected():
    token = make_token({"metadata": {"role": "editor"}})

    with pytest.raises(AuthenticationError):
        decode_session_token(token, secret=SECRET)


def test_audience_is_checked_when_configured():
    token = make_token({"sub": "user_1", "aud": "blog"})

    assert decode_session_token(token, secret=SECRET, audience="blog").user_id == "user_1"
    with pytest.raises(AuthenticationError):
        decode_session_token(token, secret=SECRET, audience="elsewhere")


@pytest.mark.asyncio
async def test_optional_caller_without_credentials():
    assert await get_optional_caller(None) is None


@pytest.mark.asyncio
async def test_optional_caller_uses_configured_secret(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", SecretStr(SECRET))
    token = make_token({"sub": "user_9", "metadata": {"role": "viewer"}})
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    caller = await get_optional_caller(credentials)

    assert caller == Caller(user_id="user_9", role=UserRole.VIEWER)


@pytest.mark.asyncio
async def test_current_caller_requires_authentication():
    with pytest.raises(AuthenticationError):
        await get_current_caller(None)


@pytest.mark.asyncio
async def test_require_role_admits_and_denies():
    dependency = require_role(UserRole.EDITOR)
    editor = Caller(user_id="user_1", role=UserRole.EDITOR)

    assert await dependency(editor) is editor

    with pytest.raises(ForbiddenError) as exc_info:
        await dependency(Caller(user_id="user_2", role=UserRole.VIEWER))
    assert exc_info.value.message == "Requires editor role"

    with pytest.raises(ForbiddenError):
        await dependency(Caller(user_id="user_3"))


@pytest.mark.parametrize("secret", ["", "   "])
def test_settings_refuse_blank_session_secret(secret):
    with pytest.raises(pydantic.ValidationError) as exc_info:
        Settings(AUTH_JWT_SECRET=secret, _env_file=None)
    assert "AUTH_JWT_SECRET" in str(exc_info.value)


def test_settings_require_session_secret(monkeypatch):
    monkeypatch.delenv("AUTH_JWT_SECRET", raising=False)

    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None)


def test_token_signed_with_empty_key_is_rejected():
    """Without a configured secret no token is accepted, including one signed with an empty key."""
    forged = make_token({"sub": "attacker", "metadata": {"role": "editor"}}, secret="")

    with pytest.raises(AuthenticationError):
        decode_session_token(forged, secret="")
    with pytest.raises(AuthenticationError):
        decode_session_token(forged, secret=SECRET)
