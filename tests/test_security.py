import os
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt
from unittest.mock import patch

from app.core.config import Settings, settings
from app.core.security import (
    ALGORITHM,
    authenticate_admin,
    create_admin_token,
    decode_admin_token,
    require_admin,
)

def test_authenticate_admin():
    with patch.object(settings, "ADMIN_PASSWORD", "s3cret"):
        assert authenticate_admin("s3cret")
        assert not authenticate_admin("s3cre")
        assert not authenticate_admin("")

def test_token_round_trip():
    payload = decode_admin_token(create_admin_token())
    assert payload["sub"] == "admin"

def test_expired_token_rejected():
    token = create_admin_token(expires_minutes=-1)
    with pytest.raises(HTTPException) as exc:
        decode_admin_token(token)
    assert exc.value.status_code == 401

def test_token_signed_with_other_key_rejected():
    token = jwt.encode({"sub": "admin"}, "another-key", algorithm=ALGORITHM)
    with pytest.raises(HTTPException):
        decode_admin_token(token)

def test_token_for_other_subject_rejected():
    token = jwt.encode({"sub": "customer"}, settings.SECRET_KEY, algorithm=ALGORITHM)
    with pytest.raises(HTTPException):
        decode_admin_token(token)

@pytest.mark.asyncio
async def test_require_admin_without_credentials():
    with pytest.raises(HTTPException) as exc:
        await require_admin(None)
    assert exc.value.status_code == 401

@pytest.mark.asyncio
async def test_require_admin_with_token():
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=create_admin_token())
    payload = await require_admin(credentials)
    assert payload["sub"] == "admin"

def test_admin_password_has_no_default():
    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop("ADMIN_PASSWORD", None)
        assert Settings(_env_file=None).ADMIN_PASSWORD == ""

def test_login_refused_until_password_configured():
    with patch.object(settings, "ADMIN_PASSWORD", ""):
        assert not authenticate_admin("change-me")
        assert not authenticate_admin("")
