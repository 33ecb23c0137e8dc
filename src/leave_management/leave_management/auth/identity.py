"""External identity verification.

The sign-in flow only needs a verified (email, name, external id, avatar)
tuple; ``GoogleIdentityVerifier`` gets it from a Google ID token by checking
its RS256 signature against Google's published keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import jwt

from ..core.exceptions import InvalidCredentialError

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(frozen=True)
class VerifiedIdentity:
    email: str
    display_name: str
    external_id: str
    avatar_url: str = ""


class IdentityVerifier(Protocol):
    def verify(self, credential: str) -> VerifiedIdentity:
        """Return the identity behind ``credential`` or raise InvalidCredentialError."""

        raise NotImplementedError


class GoogleIdentityVerifier(IdentityVerifier):
    def __init__(self, client_id: str, *, certs_url: str = GOOGLE_CERTS_URL, leeway_seconds: int = 10):
        self._client_id = client_id
        self._jwks = jwt.PyJWKClient(certs_url)
        self._leeway = leeway_seconds

    def verify(self, credential: str) -> VerifiedIdentity:
        if not credential:
            raise InvalidCredentialError("Google ID token is required")
        if not self._client_id:
            raise InvalidCredentialError("Google sign-in is not configured")

        try:
            signing_key = self._jwks.get_signing_key_from_jwt(credential)
            claims = jwt.decode(
                credential,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._client_id,
                leeway=self._leeway,
                options={"require": ["exp", "iss", "sub", "aud"]},
            )
        except jwt.PyJWKClientError as e:
            logger.warning("Could not load Google signing keys: %s", e)
            raise InvalidCredentialError("Invalid Google ID token") from e
        except jwt.InvalidTokenError as e:
            logger.info("Google ID token rejected: %s", e)
            raise InvalidCredentialError("Invalid Google ID token") from e

        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise InvalidCredentialError("Invalid Google ID token")
        email = claims.get("email") or ""
        if not email or claims.get("email_verified") is False:
            raise InvalidCredentialError("Google account has no verified email")

        return VerifiedIdentity(
            email=email,
            display_name=claims.get("name") or "",
            external_id=str(claims["sub"]),
            avatar_url=claims.get("picture") or "",
        )
