import jwt
import pytest

from moneyflow.core.errors import AuthorizationError
from moneyflow.api.deps import current_user
from moneyflow.core.security import create_access_token, decode_token, hash_password, verify_password
from fastapi.security import HTTPAuthorizationCredentials


def test_password_hash_round_trip():
    h = hash_password("correct horse")
    assert verify_password("correct horse", h)
    assert not verify_password("wrong horse", h)
    assert not verify_password(None, h)


def test_long_passwords_are_clipped_consistently():
    p = "x" * 100
    assert verify_password(p, hash_password(p))


def test_token_round_trip():
    claims = decode_token(create_access_token(sub="u-1", email="a@b.co"))
    assert claims["sub"] == "u-1"
    assert claims["email"] == "a@b.co"


def test_tampered_token_is_rejected():
    token = create_access_token(sub="u-1", email="a@b.co")
    with pytest.raises(jwt.PyJWTError):
        decode_token(token + "x")


def test_current_user_requires_credentials():
    with pytest.raises(AuthorizationError):
        current_user(None)
    with pytest.raises(AuthorizationError):
        current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage"))
    creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials=create_access_token(sub="u-1", email="a@b.co"))
    assert current_user(creds)["sub"] == "u-1"
