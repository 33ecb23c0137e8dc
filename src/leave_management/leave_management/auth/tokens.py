"""Session token issuance and verification (HS256 JWT)."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from ..core.constants import DEFAULT_TOKEN_DAYS
from ..core.enums import Role
from ..core.exceptions import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: Role
    email: str
    expires_at: datetime


class TokenService:
    """Issues bearer tokens carrying the user id and the role at issuance time."""

    DEFAULT_ALGORITHM = "HS256"

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        expire_days: int = DEFAULT_TOKEN_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret_key:
            raise ValueError("JWT secret key must be configured")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire = timedelta(days=int(expire_days))
        self._clock = clock

    def issue(self, *, user_id: int, role: Role, email: str = "", expires_delta: Optional[timedelta] = None) -> str:
        now = self._clock()
        payload = {
            "sub": str(int(user_id)),
            "role": Role(role).value,
            "email": email,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self._expire),
            "jti": secrets.token_hex(16),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        logger.debug("Token issued for user %s", user_id)
        return token

    def verify(self, token: str) -> TokenClaims:
        if not token:
            raise InvalidTokenError("Access denied. No token provided.")
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token expired.") from e
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            raise InvalidTokenError("Invalid token.") from e

        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                role=Role(payload["role"]),
                email=str(payload.get("email") or ""),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Invalid token.") from e
