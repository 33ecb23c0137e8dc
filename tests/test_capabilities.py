from __future__ import annotations

import pytest

from src.leave_management.leave_management.auth.capabilities import Actor, capabilities_for, has_capability
from src.leave_management.leave_management.core.enums import Capability, Role
from src.leave_management.leave_management.core.exceptions import AuthorizationError


@pytest.mark.parametrize("role", [Role.CARETAKER, Role.WARDEN, Role.ADMIN])
def test_approver_roles(role):
    assert has_capability(role, Capability.APPROVE_LEAVE)
    assert not has_capability(role, Capability.SUBMIT_LEAVE)


def test_only_students_submit():
    assert capabilities_for(Role.STUDENT) == frozenset({Capability.SUBMIT_LEAVE})


def test_admin_only_capabilities():
    for cap in (Capability.MANAGE_USERS, Capability.VIEW_SYSTEM_STATS, Capability.AUDIT_LEAVES):
        assert has_capability(Role.ADMIN, cap)
        assert not has_capability(Role.WARDEN, cap)
        assert not has_capability(Role.CARETAKER, cap)


def test_actor_require_raises_with_message():
    actor = Actor(user_id=1, role=Role.STUDENT)
    with pytest.raises(AuthorizationError, match="Only approvers"):
        actor.require(Capability.APPROVE_LEAVE, "Only approvers")
