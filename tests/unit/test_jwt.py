"""Access token minting and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from casino.auth.jwt import create_access_token, verify_token
from casino.config import get_settings


def _encode(**claims) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "player-0001",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.jwt_issuer,
        "type": "access",
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def test_round_trip():
    payload = verify_token(create_access_token("player-0001"))
    assert payload["sub"] == "player-0001"
    assert payload["type"] == "access"
    assert payload["iss"] == get_settings().jwt_issuer


def test_expired():
    token = _encode(exp=datetime.now(timezone.utc) - timedelta(seconds=1))
    with pytest.raises(jwt.InvalidTokenError, match="expired"):
        verify_token(token)


def test_wrong_type():
    with pytest.raises(jwt.InvalidTokenError, match="token type"):
        verify_token(_encode(type="refresh"))


def test_missing_subject():
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(_encode(sub=""))


def test_wrong_issuer():
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(_encode(iss="someone-else"))


def test_wrong_secret():
    token = jwt.encode(
        {"sub": "player-0001", "type": "access", "iss": get_settings().jwt_issuer},
        "not-the-secret-but-long-enough-to-pass",
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(token)
