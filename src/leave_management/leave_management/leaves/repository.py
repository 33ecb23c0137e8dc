from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import LeaveStatus, LeaveType
from .model import (
    ContactDetails,
    LeaveFilters,
    LeaveListRow,
    LeaveReportRow,
    LeaveRequest,
    LeaveSummary,
    PendingCounts,
)


class LeaveRepository(Protocol):
    """Leave request store.

    ``decide_leave`` and ``delete_pending`` are conditional writes: they only
    touch a row that is still pending at the moment of the write and report
    whether they did.
    """

    def create_leave(
        self,
        *,
        student_id: int,
        from_date: date,
        to_date: date,
        reason: str,
        leave_type: LeaveType,
        contact: ContactDetails,
        is_urgent: bool,
        urgent_reason: str,
        now: datetime,
    ) -> int:
        raise NotImplementedError

    def get_leave(self, *, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_blocking_for_student(self, *, student_id: int) -> Sequence[LeaveRequest]:
        """Pending/approved requests of a student (overlap candidates)."""

        raise NotImplementedError

    def list_leave_requests(
        self,
        *,
        status: Optional[LeaveStatus] = None,
        student_id: Optional[int] = None,
        approved_by: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[LeaveListRow]:
        """Newest first, joined with student and approver."""

        raise NotImplementedError

    def search_leave_requests(
        self,
        *,
        filters: LeaveFilters,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[LeaveListRow], int]:
        raise NotImplementedError

    def decide_leave(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: int,
        remarks: str,
        decided_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def delete_pending(self, *, request_id: int, student_id: int) -> bool:
        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        student_id: Optional[int] = None,
        approved_by: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
    ) -> Sequence[LeaveReportRow]:
        raise NotImplementedError

    def count_by_status(
        self,
        *,
        student_id: Optional[int] = None,
        approved_by: Optional[int] = None,
    ) -> Mapping[LeaveStatus, int]:
        """Request counts per status; every status is present."""

        raise NotImplementedError

    def count_pending(self, *, today: date) -> PendingCounts:
        raise NotImplementedError

    def summarize(self, *, filters: LeaveFilters) -> LeaveSummary:
        raise NotImplementedError
