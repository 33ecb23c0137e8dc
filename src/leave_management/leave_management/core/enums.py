from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    STUDENT = "student"
    CARETAKER = "caretaker"
    WARDEN = "warden"
    ADMIN = "admin"


class LeaveType(str, Enum):
    DAY = "day"
    HOME = "home"


class LeaveStatus(str, Enum):
    """Leave request workflow state. APPROVED and REJECTED are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


class Capability(str, Enum):
    SUBMIT_LEAVE = "submit_leave"
    APPROVE_LEAVE = "approve_leave"
    VIEW_ANY_LEAVE = "view_any_leave"
    MANAGE_USERS = "manage_users"
    VIEW_SYSTEM_STATS = "view_system_stats"
    AUDIT_LEAVES = "audit_leaves"


class ReportType(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    DEPARTMENT = "department"
    STUDENT = "student"
