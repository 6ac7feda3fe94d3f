"""
Tests for bearer token verification.
"""

from datetime import timedelta

import jwt
import pytest

from pickup.services import auth_service
from pickup.utils.datetime_utils import utcnow

SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(auth_service, "JWT_SECRET", SECRET)
    monkeypatch.setattr(auth_service, "JWT_AUDIENCE", "authenticated")


def _token(secret=SECRET, **claims):
    payload = {"sub": "user-1", "aud": "authenticated", "exp": utcnow() + timedelta(hours=1)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def test_valid_token():
    payload = auth_service.verify_token(_token())
    assert payload["sub"] == "user-1"


def test_expired_token():
    assert auth_service.verify_token(_token(exp=utcnow() - timedelta(minutes=1))) is None


def test_wrong_secret():
    assert auth_service.verify_token(_token(secret="another-secret-of-sufficient-length")) is None


def test_wrong_audience():
    assert auth_service.verify_token(_token(aud="anon")) is None


def test_missing_subject():
    assert auth_service.verify_token(_token(sub="")) is None


def test_garbage_and_empty_tokens():
    assert auth_service.verify_token("not-a-jwt") is None
    assert auth_service.verify_token("") is None


def test_rejects_everything_without_secret(monkeypatch):
    token = _token()
    monkeypatch.setattr(auth_service, "JWT_SECRET", None)
    assert auth_service.verify_token(token) is None
