from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import NewUser, User

# Columns a profile update is allowed to touch (attribute name -> column name).
PROFILE_COLUMNS: Mapping[str, str] = {
    "name": "name",
    "student_id": "student_id",
    "year": "year",
    "department": "department",
    "hostel": "hostel",
    "room_number": "room_number",
    "contact_number": "contact_number",
    "emergency_name": "emergency_name",
    "emergency_relationship": "emergency_relationship",
    "emergency_phone": "emergency_phone",
}


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this protocol, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, new_user: NewUser, *, now: datetime) -> int:
        """Insert a user; raises ConflictError when email/external id already exists."""

        raise NotImplementedError

    def record_login(self, user_id: int, *, external_id: Optional[str], profile_picture: str, now: datetime) -> bool:
        raise NotImplementedError

    def update_profile(self, user_id: int, *, changes: Mapping[str, object]) -> bool:
        raise NotImplementedError

    def update_role(
        self,
        user_id: int,
        *,
        role: Role,
        clear_student_fields: bool,
        student_id: Optional[str] = None,
        year: Optional[int] = None,
    ) -> bool:
        """Change the role; ``student_id``/``year`` are written together with it when given."""

        raise NotImplementedError

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
        order_by_name: bool = False,
    ) -> tuple[Sequence[User], int]:
        """Newest first unless ``order_by_name``."""

        raise NotImplementedError

    def count_by_role(self) -> Mapping[Role, int]:
        raise NotImplementedError
