from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Mapping, Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..users.model import EmergencyContact
from .model import (
    ContactDetails,
    LeaveFilters,
    LeaveListRow,
    LeaveReportRow,
    LeaveRequest,
    LeaveSummary,
    PendingCounts,
)
from .repository import LeaveRepository

_LEAVE_COLUMNS = """
    r.request_id, r.student_id, r.from_date, r.to_date, r.reason, r.leave_type, r.status,
    r.remarks, r.approved_by, r.approved_at,
    r.contact_address, r.contact_phone,
    r.emergency_name, r.emergency_relationship, r.emergency_phone,
    r.is_urgent, r.urgent_reason, r.created_at, r.updated_at
"""

_LIST_SELECT = f"""
    SELECT {_LEAVE_COLUMNS},
           s.name AS student_name, s.email AS student_email, s.student_id AS student_code,
           s.department, s.year, s.hostel, s.room_number,
           a.name AS approver_name, a.role AS approver_role
    FROM leave_requests r
    JOIN users s ON s.user_id = r.student_id
    LEFT JOIN users a ON a.user_id = r.approved_by
"""


def _row_to_leave(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        student_id=int(r["student_id"]),
        from_date=r["from_date"],
        to_date=r["to_date"],
        reason=r["reason"],
        leave_type=LeaveType(r["leave_type"]),
        status=LeaveStatus(r["status"]),
        contact=ContactDetails(
            address=r["contact_address"],
            phone=r["contact_phone"],
            emergency_contact=EmergencyContact(
                name=r["emergency_name"],
                relationship=r["emergency_relationship"],
                phone=r["emergency_phone"],
            ),
        ),
        is_urgent=bool(r.get("is_urgent")),
        urgent_reason=r.get("urgent_reason") or "",
        remarks=r.get("remarks") or "",
        approved_by=int(r["approved_by"]) if r.get("approved_by") is not None else None,
        approved_at=r.get("approved_at"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _row_to_list_row(r: dict) -> LeaveListRow:
    return LeaveListRow(
        request=_row_to_leave(r),
        student_name=r.get("student_name") or "",
        student_email=r.get("student_email") or "",
        student_code=r.get("student_code"),
        department=r.get("department"),
        year=int(r["year"]) if r.get("year") is not None else None,
        hostel=r.get("hostel"),
        room_number=r.get("room_number"),
        approver_name=r.get("approver_name"),
        approver_role=r.get("approver_role"),
    )


def _filter_clauses(filters: LeaveFilters) -> tuple[str, list[object]]:
    """WHERE clause over leave_requests r joined with users s."""
    clauses = ["1=1"]
    params: list[object] = []

    if filters.status is not None:
        clauses.append("r.status=%s")
        params.append(filters.status.value)
    if filters.leave_type is not None:
        clauses.append("r.leave_type=%s")
        params.append(filters.leave_type.value)
    if filters.department:
        clauses.append("s.department=%s")
        params.append(filters.department)
    if filters.student_id is not None:
        clauses.append("r.student_id=%s")
        params.append(int(filters.student_id))
    if filters.created_from is not None:
        clauses.append("r.created_at >= %s")
        params.append(filters.created_from)
    if filters.created_to is not None:
        clauses.append("r.created_at < %s")
        params.append(filters.created_to + timedelta(days=1))

    return " AND ".join(clauses), params


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        ec = contact.emergency_contact
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(
                    student_id, from_date, to_date, reason, leave_type, status,
                    contact_address, contact_phone,
                    emergency_name, emergency_relationship, emergency_phone,
                    is_urgent, urgent_reason, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(student_id),
                    from_date,
                    to_date,
                    reason,
                    leave_type.value,
                    LeaveStatus.PENDING.value,
                    contact.address,
                    contact.phone,
                    ec.name,
                    ec.relationship,
                    ec.phone,
                    1 if is_urgent else 0,
                    urgent_reason or "",
                    now,
                    now,
                ),
            )
            return int(cur.lastrowid)

    def get_leave(self, *, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LEAVE_COLUMNS} FROM leave_requests r WHERE r.request_id=%s",
                (int(request_id),),
            )
            r = fetchone(cur)
            return _row_to_leave(r) if r else None

    def list_blocking_for_student(self, *, student_id: int) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_LEAVE_COLUMNS}
                FROM leave_requests r
                WHERE r.student_id=%s AND r.status IN (%s, %s)
                ORDER BY r.from_date
                """,
                (int(student_id), LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value),
            )
            return [_row_to_leave(r) for r in fetchall(cur)]

    def list_leave_requests(
        self,
        *,
        status: Optional[LeaveStatus] = None,
        student_id: Optional[int] = None,
        approved_by: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[LeaveListRow]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)
        if student_id is not None:
            clauses.append("r.student_id=%s")
            params.append(int(student_id))
        if approved_by is not None:
            clauses.append("r.approved_by=%s")
            params.append(int(approved_by))

        where = " AND ".join(clauses)
        order = "r.approved_at DESC" if approved_by is not None else "r.created_at DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_LIST_SELECT}
                WHERE {where}
                ORDER BY {order}, r.request_id DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [_row_to_list_row(r) for r in fetchall(cur)]

    def search_leave_requests(
        self,
        *,
        filters: LeaveFilters,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[LeaveListRow], int]:
        where, params = _filter_clauses(filters)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total
                FROM leave_requests r
                JOIN users s ON s.user_id = r.student_id
                WHERE {where}
                """,
                tuple(params),
            )
            total = int((fetchone(cur) or {}).get("total", 0))

            cur.execute(
                f"""
                {_LIST_SELECT}
                WHERE {where}
                ORDER BY r.created_at DESC, r.request_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_list_row(r) for r in fetchall(cur)], total

    def decide_leave(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: int,
        remarks: str,
        decided_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, approved_by=%s, approved_at=%s, remarks=%s, updated_at=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(decided_by),
                    decided_at,
                    remarks,
                    decided_at,
                    int(request_id),
                    LeaveStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def delete_pending(self, *, request_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM leave_requests WHERE request_id=%s AND student_id=%s AND status=%s",
                (int(request_id), int(student_id), LeaveStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def get_report_rows(
        self,
        *,
        student_id: Optional[int] = None,
        approved_by: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
    ) -> Sequence[LeaveReportRow]:
        clauses = ["1=1"]
        params: list[object] = []
        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)
        if student_id is not None:
            clauses.append("r.student_id=%s")
            params.append(int(student_id))
        if approved_by is not None:
            clauses.append("r.approved_by=%s")
            params.append(int(approved_by))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT r.request_id, r.student_id, s.department, r.status, r.leave_type,
                       r.from_date, r.to_date, r.is_urgent, r.created_at,
                       r.approved_by, r.approved_at
                FROM leave_requests r
                JOIN users s ON s.user_id = r.student_id
                WHERE {where}
                """,
                tuple(params),
            )
            return [
                LeaveReportRow(
                    request_id=int(r["request_id"]),
                    student_id=int(r["student_id"]),
                    department=r.get("department"),
                    status=LeaveStatus(r["status"]),
                    leave_type=LeaveType(r["leave_type"]),
                    from_date=r["from_date"],
                    to_date=r["to_date"],
                    is_urgent=bool(r.get("is_urgent")),
                    created_at=r["created_at"],
                    approved_by=int(r["approved_by"]) if r.get("approved_by") is not None else None,
                    approved_at=r.get("approved_at"),
                )
                for r in fetchall(cur)
            ]

    def count_by_status(
        self,
        *,
        student_id: Optional[int] = None,
        approved_by: Optional[int] = None,
    ) -> Mapping[LeaveStatus, int]:
        clauses = ["1=1"]
        params: list[object] = []
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))
        if approved_by is not None:
            clauses.append("approved_by=%s")
            params.append(int(approved_by))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT status, COUNT(*) AS total FROM leave_requests WHERE {' AND '.join(clauses)} GROUP BY status",
                tuple(params),
            )
            counts = {s: 0 for s in LeaveStatus}
            for row in fetchall(cur):
                counts[LeaveStatus(row["status"])] = int(row["total"])
            return counts

    def count_pending(self, *, today: date) -> PendingCounts:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(is_urgent = 1), 0) AS urgent,
                       COALESCE(SUM(from_date = %s), 0) AS starting_today
                FROM leave_requests
                WHERE status=%s
                """,
                (today, LeaveStatus.PENDING.value),
            )
            r = fetchone(cur) or {}
            return PendingCounts(
                total=int(r.get("total") or 0),
                urgent=int(r.get("urgent") or 0),
                starting_today=int(r.get("starting_today") or 0),
            )

    def summarize(self, *, filters: LeaveFilters) -> LeaveSummary:
        where, params = _filter_clauses(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(r.status = %s), 0) AS pending,
                       COALESCE(SUM(r.status = %s), 0) AS approved,
                       COALESCE(SUM(r.status = %s), 0) AS rejected,
                       COALESCE(SUM(r.leave_type = %s), 0) AS day_leaves,
                       COALESCE(SUM(r.leave_type = %s), 0) AS home_leaves,
                       COALESCE(SUM(r.is_urgent = 1), 0) AS urgent
                FROM leave_requests r
                JOIN users s ON s.user_id = r.student_id
                WHERE {where}
                """,
                tuple(
                    [
                        LeaveStatus.PENDING.value,
                        LeaveStatus.APPROVED.value,
                        LeaveStatus.REJECTED.value,
                        LeaveType.DAY.value,
                        LeaveType.HOME.value,
                    ]
                    + params
                ),
            )
            r = fetchone(cur) or {}
            return LeaveSummary(
                total=int(r.get("total") or 0),
                pending=int(r.get("pending") or 0),
                approved=int(r.get("approved") or 0),
                rejected=int(r.get("rejected") or 0),
                day_leaves=int(r.get("day_leaves") or 0),
                home_leaves=int(r.get("home_leaves") or 0),
                urgent=int(r.get("urgent") or 0),
            )
