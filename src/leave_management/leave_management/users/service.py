from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Callable, Optional

from ..auth.capabilities import Actor, has_capability
from ..common.datetime_utils import now_local
from ..common.validators import check_length, check_phone, email_in_domain, normalize_email
from ..core import constants as C
from ..core.enums import Capability, Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    Violation,
)
from .model import NewUser, User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileUpdate:
    """Self-service profile changes. ``None`` means "leave unchanged"."""

    name: Optional[str] = None
    contact_number: Optional[str] = None
    department: Optional[str] = None
    hostel: Optional[str] = None
    room_number: Optional[str] = None
    emergency_name: Optional[str] = None
    emergency_relationship: Optional[str] = None
    emergency_phone: Optional[str] = None
    student_id: Optional[str] = None
    year: Optional[int] = None

    def changes(self) -> dict:
        out: dict = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[f.name] = value.strip() if isinstance(value, str) else value
        return out


def validate_profile_update(update: ProfileUpdate, *, role: Role) -> list[Violation]:
    """Collect every broken rule of a profile update."""
    violations: list[Optional[Violation]] = []

    if update.name is not None:
        violations.append(check_length(update.name, "name", min_len=C.NAME_MIN, max_len=C.NAME_MAX, label="Name"))
    if update.contact_number:
        violations.append(check_phone(update.contact_number, "contactNumber", label="Contact number"))
    if update.department is not None:
        violations.append(check_length(update.department, "department", max_len=C.DEPARTMENT_MAX, label="Department"))
    if update.hostel is not None:
        violations.append(check_length(update.hostel, "hostel", max_len=C.HOSTEL_MAX, label="Hostel"))
    if update.room_number is not None:
        violations.append(check_length(update.room_number, "roomNumber", max_len=C.ROOM_MAX, label="Room number"))
    if update.emergency_name is not None:
        violations.append(
            check_length(update.emergency_name, "emergencyContact.name", max_len=C.EMERGENCY_NAME_MAX, label="Emergency contact name")
        )
    if update.emergency_relationship is not None:
        violations.append(
            check_length(
                update.emergency_relationship,
                "emergencyContact.relationship",
                max_len=C.RELATIONSHIP_MAX,
                label="Relationship",
            )
        )
    if update.emergency_phone:
        violations.append(check_phone(update.emergency_phone, "emergencyContact.phone", label="Emergency contact phone"))

    student_fields_given = update.student_id is not None or update.year is not None
    if student_fields_given and role != Role.STUDENT:
        violations.append(Violation("studentId", "invalid_field", "Student ID and year apply to students only"))
    else:
        if update.student_id is not None:
            violations.append(
                check_length(update.student_id, "studentId", min_len=1, max_len=C.STUDENT_ID_MAX, label="Student ID")
            )
        if update.year is not None and not (C.YEAR_MIN <= int(update.year) <= C.YEAR_MAX):
            violations.append(Violation("year", "invalid_field", f"Year must be between {C.YEAR_MIN} and {C.YEAR_MAX}"))

    return [v for v in violations if v is not None]


class UserService:
    """Identity directory: lookups, first sign-in provisioning, admin management."""

    def __init__(
        self,
        users: UserRepository,
        *,
        email_domain: str = C.DEFAULT_EMAIL_DOMAIN,
        clock: Callable[[], datetime] = now_local,
    ):
        self._users = users
        self._email_domain = email_domain
        self._clock = clock

    @property
    def email_domain(self) -> str:
        return self._email_domain

    @staticmethod
    def has_capability(role: Role, capability: Capability) -> bool:
        return has_capability(role, capability)

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._users.get_by_id(int(user_id))

    def find_by_email(self, email: str) -> Optional[User]:
        return self._users.get_by_email(normalize_email(email))

    def require_user(self, user_id: int) -> User:
        user = self.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def find_or_create(self, new_user: NewUser) -> tuple[User, bool]:
        """Upsert keyed on email. Returns (user, created)."""
        email = normalize_email(new_user.email)
        if not email_in_domain(email, self._email_domain):
            raise ValidationError.single(
                "email", "invalid_field", f"Only @{self._email_domain} email addresses are allowed"
            )

        now = self._clock()
        existing = self._users.get_by_email(email)
        if existing:
            self._users.record_login(
                existing.user_id,
                external_id=new_user.external_id,
                profile_picture=new_user.profile_picture or existing.profile_picture,
                now=now,
            )
            return self.require_user(existing.user_id), False

        name = (new_user.name or "").strip() or email.split("@", 1)[0]
        try:
            user_id = self._users.create_user(
                NewUser(
                    email=email,
                    name=name[: C.NAME_MAX],
                    role=new_user.role,
                    external_id=new_user.external_id,
                    profile_picture=new_user.profile_picture,
                ),
                now=now,
            )
        except ConflictError:
            # Another sign-in for the same email won the insert.
            existing = self._users.get_by_email(email)
            if not existing:
                raise
            return existing, False

        logger.info("Provisioned user %s (%s) with role %s", user_id, email, new_user.role.value)
        return self.require_user(user_id), True

    def get_profile(self, actor: Actor) -> User:
        return self.require_user(actor.user_id)

    def update_profile(self, actor: Actor, update: ProfileUpdate) -> User:
        user = self.require_user(actor.user_id)
        ValidationError.raise_if_any(validate_profile_update(update, role=user.role))

        changes = update.changes()
        if not changes:
            return user
        if "year" in changes:
            changes["year"] = int(changes["year"])

        self._users.update_profile(user.user_id, changes=changes)
        return self.require_user(user.user_id)

    def get_user(self, actor: Actor, user_id: int) -> User:
        if int(user_id) != actor.user_id and not actor.can(Capability.VIEW_ANY_LEAVE):
            raise AuthorizationError("Access denied. You can only access your own data.")
        return self.require_user(user_id)

    def list_users(
        self,
        actor: Actor,
        *,
        role: Optional[Role] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = C.DEFAULT_PAGE_SIZE,
    ) -> dict:
        actor.require(Capability.MANAGE_USERS)

        page = max(1, int(page))
        limit = max(1, min(int(limit), C.MAX_PAGE_SIZE))
        users, total = self._users.list_users(
            role=role,
            search=(search or "").strip() or None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total_pages = (total + limit - 1) // limit
        return {
            "users": list(users),
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalUsers": total,
                "hasNext": page < total_pages,
                "hasPrev": page > 1,
            },
        }

    def search_users(self, actor: Actor, *, query: Optional[str] = None, role: Optional[Role] = None) -> list[User]:
        """Name-ordered lookup by name, email or student ID for approvers."""
        actor.require(Capability.APPROVE_LEAVE, "Access denied. Approver role required.")

        users, _ = self._users.list_users(
            role=role,
            search=(query or "").strip() or None,
            limit=C.USER_SEARCH_LIMIT,
            order_by_name=True,
        )
        return list(users)

    def update_role(
        self,
        actor: Actor,
        user_id: int,
        role: Role,
        *,
        student_id: Optional[str] = None,
        year: Optional[int] = None,
    ) -> User:
        """Change a user's role.

        Leaving ``student`` clears student ID and year. Moving to ``student``
        takes them from the arguments, falling back to what is stored.
        """
        actor.require(Capability.MANAGE_USERS)
        if int(user_id) == actor.user_id:
            raise AuthorizationError("You cannot change your own role")

        user = self.require_user(user_id)
        role = Role(role)
        ValidationError.raise_if_any(
            validate_profile_update(ProfileUpdate(student_id=student_id, year=year), role=role)
        )

        if role == Role.STUDENT:
            student_id = student_id.strip() if student_id is not None else user.student_id
            year = int(year) if year is not None else user.year
            if not (student_id and year):
                raise ValidationError.single(
                    "role", "incomplete_profile", "Student ID and year must be set before assigning the student role"
                )

        self._users.update_role(
            user.user_id,
            role=role,
            clear_student_fields=role != Role.STUDENT,
            student_id=student_id if role == Role.STUDENT else None,
            year=year if role == Role.STUDENT else None,
        )
        logger.info("User %s changed role of user %s: %s -> %s", actor.user_id, user.user_id, user.role.value, role.value)
        return self.require_user(user.user_id)

    def update_active_status(self, actor: Actor, user_id: int, is_active: bool) -> User:
        actor.require(Capability.MANAGE_USERS)
        if int(user_id) == actor.user_id:
            raise AuthorizationError("You cannot deactivate your own account")

        user = self.require_user(user_id)
        self._users.set_active(user.user_id, is_active=bool(is_active))
        logger.info(
            "User %s %s user %s", actor.user_id, "activated" if is_active else "deactivated", user.user_id
        )
        return self.require_user(user.user_id)
