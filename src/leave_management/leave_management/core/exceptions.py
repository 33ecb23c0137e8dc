from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence


@dataclass(frozen=True)
class Violation:
    """One broken business rule, reported back to the client as-is."""

    field: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "code": self.code, "message": self.message}


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    Carries every violated rule, not only the first one.
    """

    code = "validation_error"

    def __init__(self, message: str = "", violations: Sequence[Violation] = ()):
        self.violations: list[Violation] = list(violations)
        if not message:
            message = "; ".join(v.message for v in self.violations) or "Invalid input"
        super().__init__(message)

    @classmethod
    def single(cls, field: str, code: str, message: str) -> "ValidationError":
        return cls(message, [Violation(field, code, message)])

    @classmethod
    def raise_if_any(cls, violations: Iterable[Violation]) -> None:
        found = list(violations)
        if found:
            raise cls(violations=found)


class AuthenticationError(DomainError):
    """Raised when the caller cannot be identified."""

    code = "unauthenticated"


class InvalidCredentialError(AuthenticationError):
    """External identity verification failed."""

    code = "invalid_credential"


class TokenExpiredError(AuthenticationError):
    code = "token_expired"


class InvalidTokenError(AuthenticationError):
    code = "token_invalid"


class AuthorizationError(DomainError):
    """Raised when a user lacks role or ownership for an action."""

    code = "forbidden"


class NotFoundError(DomainError):
    code = "not_found"


class InvalidTransitionError(DomainError):
    """Leave request is not in the state the transition requires (includes lost races)."""

    code = "invalid_transition"


class ConflictError(DomainError):
    """Uniqueness violation, e.g. duplicate email."""

    code = "conflict"
