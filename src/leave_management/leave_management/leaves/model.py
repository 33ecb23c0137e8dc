from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import iso
from ..core.enums import LeaveStatus, LeaveType
from ..users.model import EmergencyContact


@dataclass(frozen=True)
class ContactDetails:
    """Where the student can be reached while on leave."""

    address: str
    phone: str
    emergency_contact: EmergencyContact

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "phone": self.phone,
            "emergencyContact": self.emergency_contact.to_dict(),
        }


@dataclass(frozen=True)
class LeaveDraft:
    """Unvalidated leave application as submitted by a student."""

    from_date: Optional[date]
    to_date: Optional[date]
    reason: str
    leave_type: str
    contact: ContactDetails
    is_urgent: object = False  # raw JSON value, checked by validate_urgency
    urgent_reason: str = ""


@dataclass(frozen=True)
class LeaveRequest:
    """Domain entity: a student's leave request."""

    request_id: int
    student_id: int
    from_date: date
    to_date: date
    reason: str
    leave_type: LeaveType
    status: LeaveStatus
    contact: ContactDetails
    is_urgent: bool = False
    urgent_reason: str = ""
    remarks: str = ""
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def duration_days(self) -> int:
        """Whole days, both endpoints included."""
        return (self.to_date - self.from_date).days + 1

    def is_overdue(self, now: datetime) -> bool:
        return self.status == LeaveStatus.PENDING and datetime.combine(self.from_date, time.min) < now

    def overlaps(self, from_date: date, to_date: date) -> bool:
        return self.from_date <= to_date and self.to_date >= from_date

    def to_dict(self, *, now: datetime) -> dict:
        return {
            "id": self.request_id,
            "student": self.student_id,
            "fromDate": iso(self.from_date),
            "toDate": iso(self.to_date),
            "reason": self.reason,
            "type": self.leave_type.value,
            "status": self.status.value,
            "remarks": self.remarks,
            "approvedBy": self.approved_by,
            "approvedAt": iso(self.approved_at),
            "contactDetails": self.contact.to_dict(),
            "isUrgent": self.is_urgent,
            "urgentReason": self.urgent_reason,
            "duration": self.duration_days,
            "isOverdue": self.is_overdue(now),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass(frozen=True)
class LeaveListRow:
    """Read-model for list screens: a request joined with student/approver names."""

    request: LeaveRequest
    student_name: str = ""
    student_email: str = ""
    student_code: Optional[str] = None
    department: Optional[str] = None
    year: Optional[int] = None
    hostel: Optional[str] = None
    room_number: Optional[str] = None
    approver_name: Optional[str] = None
    approver_role: Optional[str] = None

    def to_dict(self, *, now: datetime) -> dict:
        out = self.request.to_dict(now=now)
        out["student"] = {
            "id": self.request.student_id,
            "name": self.student_name,
            "email": self.student_email,
            "studentId": self.student_code,
            "department": self.department,
            "year": self.year,
            "hostel": self.hostel,
            "roomNumber": self.room_number,
        }
        if self.request.approved_by is not None:
            out["approvedBy"] = {
                "id": self.request.approved_by,
                "name": self.approver_name,
                "role": self.approver_role,
            }
        return out


@dataclass(frozen=True)
class LeaveFilters:
    status: Optional[LeaveStatus] = None
    leave_type: Optional[LeaveType] = None
    department: Optional[str] = None
    created_from: Optional[date] = None
    created_to: Optional[date] = None
    student_id: Optional[int] = None


@dataclass(frozen=True)
class LeaveSummary:
    """Aggregate counts over a set of leave requests."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    day_leaves: int = 0
    home_leaves: int = 0
    urgent: int = 0

    def to_dict(self) -> dict:
        return {
            "totalRequests": self.total,
            "approved": self.approved,
            "rejected": self.rejected,
            "pending": self.pending,
            "dayLeaves": self.day_leaves,
            "homeLeaves": self.home_leaves,
            "urgentRequests": self.urgent,
        }


@dataclass(frozen=True)
class PendingCounts:
    total: int = 0
    urgent: int = 0
    starting_today: int = 0


@dataclass(frozen=True)
class LeaveReportRow:
    """Flat row used by reporting rollups."""

    request_id: int
    student_id: int
    department: Optional[str]
    status: LeaveStatus
    leave_type: LeaveType
    from_date: date
    to_date: date
    is_urgent: bool
    created_at: datetime
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    @property
    def duration_days(self) -> int:
        return (self.to_date - self.from_date).days + 1


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    def pagination(self) -> dict:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalRequests": self.total,
            "hasNext": self.page < self.total_pages,
            "hasPrev": self.page > 1,
        }
