from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import iso
from ..core.enums import Role


@dataclass(frozen=True)
class EmergencyContact:
    name: str = ""
    relationship: str = ""
    phone: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "relationship": self.relationship, "phone": self.phone}


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object; no database access here. Users are never hard-deleted,
    ``is_active`` switches an account off.
    """

    user_id: int
    name: str
    email: str
    role: Role
    student_id: Optional[str] = None
    year: Optional[int] = None
    department: Optional[str] = None
    hostel: Optional[str] = None
    room_number: Optional[str] = None
    contact_number: Optional[str] = None
    emergency_contact: EmergencyContact = field(default_factory=EmergencyContact)
    external_id: Optional[str] = None
    profile_picture: str = ""
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    @property
    def profile_complete(self) -> bool:
        if not self.is_student:
            return True
        return bool(self.student_id) and self.year is not None

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "studentId": self.student_id,
            "year": self.year,
            "department": self.department,
            "hostel": self.hostel,
            "roomNumber": self.room_number,
            "contactNumber": self.contact_number,
            "emergencyContact": self.emergency_contact.to_dict(),
            "profilePicture": self.profile_picture,
            "isActive": self.is_active,
            "lastLogin": iso(self.last_login),
            "createdAt": iso(self.created_at),
            "profileComplete": self.profile_complete,
        }

    def to_search_dict(self) -> dict:
        """Directory card shown to approvers looking up a student."""
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "studentId": self.student_id,
            "department": self.department,
            "year": self.year,
            "hostel": self.hostel,
            "roomNumber": self.room_number,
        }


@dataclass(frozen=True)
class NewUser:
    """Attributes for an account provisioned at first sign-in."""

    email: str
    name: str
    role: Role = Role.STUDENT
    external_id: Optional[str] = None
    profile_picture: str = ""
