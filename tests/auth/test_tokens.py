from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from src.leave_management.leave_management.auth.tokens import TokenService
from src.leave_management.leave_management.core.enums import Role
from src.leave_management.leave_management.core.exceptions import InvalidTokenError, TokenExpiredError


def test_issue_and_verify_carry_identity_and_role():
    svc = TokenService("secret")
    token = svc.issue(user_id=42, role=Role.WARDEN, email="warden@nitgoa.ac.in")

    claims = svc.verify(token)

    assert claims.user_id == 42
    assert claims.role == Role.WARDEN
    assert claims.email == "warden@nitgoa.ac.in"


def test_default_lifetime_is_seven_days():
    issued_at = datetime(2026, 3, 9, 3, 30, tzinfo=timezone.utc)
    svc = TokenService("secret", clock=lambda: issued_at)

    payload = jwt.decode(svc.issue(user_id=1, role=Role.STUDENT), options={"verify_signature": False})

    assert payload["exp"] - payload["iat"] == int(timedelta(days=7).total_seconds())


def test_expired_token():
    svc = TokenService("secret")
    token = svc.issue(user_id=1, role=Role.STUDENT, expires_delta=timedelta(seconds=-5))

    with pytest.raises(TokenExpiredError):
        svc.verify(token)


def test_token_signed_with_other_secret_is_rejected():
    token = TokenService("other").issue(user_id=1, role=Role.ADMIN)

    with pytest.raises(InvalidTokenError):
        TokenService("secret").verify(token)


def test_missing_or_garbage_token():
    svc = TokenService("secret")
    with pytest.raises(InvalidTokenError):
        svc.verify("")
    with pytest.raises(InvalidTokenError):
        svc.verify("not-a-jwt")


def test_unknown_role_claim_is_rejected():
    token = jwt.encode(
        {"sub": "1", "role": "superuser", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "secret",
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        TokenService("secret").verify(token)


def test_secret_is_mandatory():
    with pytest.raises(ValueError):
        TokenService("")
