from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Callable, Iterable, Mapping, Optional

from ..auth.capabilities import Actor
from ..common.datetime_utils import iso, now_local
from ..core import constants as C
from ..core.enums import Capability, LeaveStatus, LeaveType, ReportType, Role
from ..core.exceptions import AuthorizationError, ValidationError, Violation
from ..leaves.model import LeaveFilters, LeaveListRow, LeaveReportRow
from ..leaves.repository import LeaveRepository
from ..users.repository import UserRepository


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


def status_totals(counts: Mapping[LeaveStatus, int]) -> dict:
    out = {s.value: int(counts.get(s, 0)) for s in LeaveStatus}
    out["total"] = sum(out.values())
    return out


def count_by_department(rows: Iterable[LeaveReportRow]) -> list[dict]:
    groups: dict[str, Counter] = defaultdict(Counter)
    for r in rows:
        groups[r.department or "-"][r.status] += 1

    out = []
    for department, counts in groups.items():
        out.append(
            {
                "department": department,
                "totalRequests": sum(counts.values()),
                "approved": counts.get(LeaveStatus.APPROVED, 0),
                "rejected": counts.get(LeaveStatus.REJECTED, 0),
                "pending": counts.get(LeaveStatus.PENDING, 0),
            }
        )
    out.sort(key=lambda x: (-x["totalRequests"], x["department"]))
    return out


def count_by_month(rows: Iterable[LeaveReportRow], *, year: int, by: str = "created") -> list[dict]:
    """Per-month counts for one year, keyed on creation or decision time."""
    groups: dict[int, Counter] = defaultdict(Counter)
    for r in rows:
        stamp = r.created_at if by == "created" else r.approved_at
        if stamp is None or stamp.year != year:
            continue
        groups[stamp.month][r.status] += 1

    return [
        {
            "month": month,
            "totalRequests": sum(groups[month].values()),
            "approved": groups[month].get(LeaveStatus.APPROVED, 0),
            "rejected": groups[month].get(LeaveStatus.REJECTED, 0),
        }
        for month in sorted(groups)
    ]


def group_by_status(rows: Iterable[LeaveListRow], *, now: datetime) -> list[dict]:
    groups: dict[LeaveStatus, list] = defaultdict(list)
    for r in rows:
        groups[r.request.status].append(r.to_dict(now=now))
    return [
        {"status": s.value, "count": len(groups[s]), "requests": groups[s]}
        for s in LeaveStatus
        if groups[s]
    ]


class ReportService:
    """Read-only rollups over leave requests."""

    def __init__(
        self,
        leaves: LeaveRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._users = users
        self._clock = clock

    def system_stats(self, actor: Actor) -> dict:
        actor.require(Capability.VIEW_SYSTEM_STATS)

        now = self._clock()
        rows = list(self._leaves.get_report_rows())
        by_role = self._users.count_by_role()
        recent = self._leaves.list_leave_requests(limit=C.RECENT_LIMIT)

        return {
            "stats": {
                "users": {
                    "total": sum(by_role.values()),
                    "students": by_role.get(Role.STUDENT, 0),
                    "caretakers": by_role.get(Role.CARETAKER, 0),
                    "wardens": by_role.get(Role.WARDEN, 0),
                    "admins": by_role.get(Role.ADMIN, 0),
                },
                "leaveRequests": status_totals(self._leaves.count_by_status()),
            },
            "departmentStats": count_by_department(rows),
            "monthlyStats": count_by_month(rows, year=now.year),
            "recentRequests": [r.to_dict(now=now) for r in recent],
        }

    def student_stats(self, actor: Actor) -> dict:
        actor.require(Capability.SUBMIT_LEAVE)

        by_status = status_totals(self._leaves.count_by_status(student_id=actor.user_id))
        approved = list(self._leaves.get_report_rows(student_id=actor.user_id, status=LeaveStatus.APPROVED))

        return {
            "totalRequests": by_status["total"],
            "approvedRequests": by_status[LeaveStatus.APPROVED.value],
            "rejectedRequests": by_status[LeaveStatus.REJECTED.value],
            "pendingRequests": by_status[LeaveStatus.PENDING.value],
            "dayLeaves": sum(1 for r in approved if r.leave_type == LeaveType.DAY),
            "homeLeaves": sum(1 for r in approved if r.leave_type == LeaveType.HOME),
            "totalDays": sum(r.duration_days for r in approved),
            "approvalRate": _rate(by_status[LeaveStatus.APPROVED.value], by_status["total"]),
        }

    def approver_stats(self, actor: Actor) -> dict:
        actor.require(Capability.APPROVE_LEAVE)

        now = self._clock()
        mine = list(self._leaves.get_report_rows(approved_by=actor.user_id))
        pending = self._leaves.count_pending(today=now.date())
        approved = sum(1 for r in mine if r.status == LeaveStatus.APPROVED)
        rejected = sum(1 for r in mine if r.status == LeaveStatus.REJECTED)

        return {
            "totalApproved": approved,
            "totalRejected": rejected,
            "pendingToReview": pending.total,
            "urgentPending": pending.urgent,
            "totalProcessed": approved + rejected,
            "approvalRate": _rate(approved, approved + rejected),
            "monthlyStats": count_by_month(mine, year=now.year, by="decided"),
        }

    def stats(self, actor: Actor) -> dict:
        if actor.can(Capability.SUBMIT_LEAVE):
            return self.student_stats(actor)
        if actor.can(Capability.APPROVE_LEAVE):
            return self.approver_stats(actor)
        raise AuthorizationError("No statistics available for this role")

    def dashboard(self, actor: Actor, *, now: Optional[datetime] = None) -> dict:
        now = now or self._clock()

        if actor.can(Capability.SUBMIT_LEAVE):
            by_status = status_totals(self._leaves.count_by_status(student_id=actor.user_id))
            recent = self._leaves.list_leave_requests(student_id=actor.user_id, limit=C.DASHBOARD_RECENT_LIMIT)
            return {
                "pendingRequests": by_status[LeaveStatus.PENDING.value],
                "approvedRequests": by_status[LeaveStatus.APPROVED.value],
                "rejectedRequests": by_status[LeaveStatus.REJECTED.value],
                "recentRequests": [r.to_dict(now=now) for r in recent],
            }

        if actor.can(Capability.APPROVE_LEAVE):
            pending = self._leaves.count_pending(today=now.date())
            recent = self._leaves.list_leave_requests(approved_by=actor.user_id, limit=C.DASHBOARD_RECENT_LIMIT)
            return {
                "pendingRequests": pending.total,
                "urgentRequests": pending.urgent,
                "todayRequests": pending.starting_today,
                "recentApprovals": [r.to_dict(now=now) for r in recent],
            }

        return {}

    def generate_report(
        self,
        actor: Actor,
        *,
        start: Optional[date],
        end: Optional[date],
        report_type: Optional[str],
        department: Optional[str] = None,
        student_id: Optional[int] = None,
    ) -> dict:
        """Admin report over requests created between ``start`` and ``end`` (both days included).

        ``summary`` is a single set of counts, ``detailed`` lists every request,
        ``department`` groups one department's requests by status and
        ``student`` lists one student's requests.
        """
        actor.require(Capability.VIEW_SYSTEM_STATS)

        violations: list[Violation] = []
        if start is None:
            violations.append(Violation("startDate", "invalid_field", "Valid start date is required"))
        if end is None:
            violations.append(Violation("endDate", "invalid_field", "Valid end date is required"))
        if start is not None and end is not None and end < start:
            violations.append(Violation("endDate", "invalid_field", "End date must be after or equal to start date"))

        try:
            report_type = ReportType((report_type or "").strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in ReportType)
            violations.append(Violation("type", "invalid_field", f"Report type must be one of: {allowed}"))
            report_type = None

        department = (department or "").strip() or None
        if report_type == ReportType.DEPARTMENT and not department:
            violations.append(Violation("department", "invalid_field", "Department is required for department report"))
        if report_type == ReportType.STUDENT and student_id is None:
            violations.append(Violation("studentId", "invalid_field", "Student ID is required for student report"))
        ValidationError.raise_if_any(violations)

        now = self._clock()
        filters = LeaveFilters(created_from=start, created_to=end)

        if report_type == ReportType.SUMMARY:
            data = self._leaves.summarize(filters=filters).to_dict()
        elif report_type == ReportType.DEPARTMENT:
            rows, _ = self._leaves.search_leave_requests(
                filters=LeaveFilters(created_from=start, created_to=end, department=department),
                limit=C.REPORT_ROW_LIMIT,
            )
            data = group_by_status(rows, now=now)
        else:
            if report_type == ReportType.STUDENT:
                filters = LeaveFilters(created_from=start, created_to=end, student_id=int(student_id))
            rows, _ = self._leaves.search_leave_requests(filters=filters, limit=C.REPORT_ROW_LIMIT)
            data = [r.to_dict(now=now) for r in rows]

        return {
            "type": report_type.value,
            "startDate": iso(start),
            "endDate": iso(end),
            "generatedAt": iso(now),
            "data": data,
        }
