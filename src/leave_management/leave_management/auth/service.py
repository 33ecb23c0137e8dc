from __future__ import annotations

import logging
from dataclasses import dataclass

from ..common.validators import email_in_domain
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, InvalidTokenError
from ..users.model import NewUser, User
from ..users.service import UserService
from .capabilities import Actor
from .identity import IdentityVerifier
from .tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignInResult:
    user: User
    token: str
    created: bool


class AuthService:
    """Use case: sign in with an external identity and authenticate bearer tokens."""

    def __init__(self, users: UserService, tokens: TokenService, verifier: IdentityVerifier):
        self._users = users
        self._tokens = tokens
        self._verifier = verifier

    def sign_in(self, credential: str) -> SignInResult:
        identity = self._verifier.verify(credential)

        # The identity provider's word is not enough: only institutional addresses get in.
        if not email_in_domain(identity.email, self._users.email_domain):
            logger.warning("Sign-in refused for outside domain: %s", identity.email)
            raise AuthorizationError(f"Only @{self._users.email_domain} email addresses are allowed")

        user, created = self._users.find_or_create(
            NewUser(
                email=identity.email,
                name=identity.display_name,
                role=Role.STUDENT,
                external_id=identity.external_id,
                profile_picture=identity.avatar_url,
            )
        )
        if not user.is_active:
            raise AuthorizationError("Account is deactivated.")

        token = self._tokens.issue(user_id=user.user_id, role=user.role, email=user.email)
        logger.info("User %s signed in (%s)", user.user_id, "new" if created else "returning")
        return SignInResult(user=user, token=token, created=created)

    def authenticate(self, bearer: str) -> tuple[Actor, User]:
        claims = self._tokens.verify(bearer)
        user = self._users.find_by_id(claims.user_id)
        if not user:
            raise InvalidTokenError("Invalid token. User not found.")
        if not user.is_active:
            raise AuthorizationError("Account is deactivated.")
        if user.role != claims.role:
            # Role changed since issuance; the client must sign in again.
            raise InvalidTokenError("Role changed. Please sign in again.")
        return Actor(user_id=user.user_id, role=claims.role), user

    def refresh(self, actor: Actor) -> str:
        user = self._users.require_user(actor.user_id)
        return self._tokens.issue(user_id=user.user_id, role=user.role, email=user.email)
