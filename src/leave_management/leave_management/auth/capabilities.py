"""Role -> capability table.

Every authorization decision goes through ``has_capability`` instead of
comparing role names at call sites.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..core.enums import Capability, Role
from ..core.exceptions import AuthorizationError

ROLE_CAPABILITIES: Mapping[Role, frozenset[Capability]] = {
    Role.STUDENT: frozenset({Capability.SUBMIT_LEAVE}),
    Role.CARETAKER: frozenset({Capability.APPROVE_LEAVE, Capability.VIEW_ANY_LEAVE}),
    Role.WARDEN: frozenset({Capability.APPROVE_LEAVE, Capability.VIEW_ANY_LEAVE}),
    Role.ADMIN: frozenset(
        {
            Capability.APPROVE_LEAVE,
            Capability.VIEW_ANY_LEAVE,
            Capability.MANAGE_USERS,
            Capability.VIEW_SYSTEM_STATS,
            Capability.AUDIT_LEAVES,
        }
    ),
}


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(Role(role), frozenset())


def capabilities_for(role: Role) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(Role(role), frozenset())


@dataclass(frozen=True)
class Actor:
    """Authenticated caller of a use case."""

    user_id: int
    role: Role

    def can(self, capability: Capability) -> bool:
        return has_capability(self.role, capability)

    def require(self, capability: Capability, message: str = "Access denied. Insufficient permissions.") -> None:
        if not self.can(capability):
            raise AuthorizationError(message)
