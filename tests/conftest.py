from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.leave_management.leave_management.auth.capabilities import Actor
from src.leave_management.leave_management.auth.identity import VerifiedIdentity
from src.leave_management.leave_management.auth.tokens import TokenService
from src.leave_management.leave_management.container import assemble_container
from src.leave_management.leave_management.core.enums import LeaveStatus, LeaveType, Role
from src.leave_management.leave_management.core.exceptions import ConflictError, InvalidCredentialError
from src.leave_management.leave_management.leaves.model import (
    ContactDetails,
    LeaveDraft,
    LeaveListRow,
    LeaveReportRow,
    LeaveRequest,
    LeaveSummary,
    PendingCounts,
)
from src.leave_management.leave_management.users.model import EmergencyContact, User

FIXED_NOW = datetime(2026, 3, 9, 9, 0, 0)


class FakeUsersRepo:
    def __init__(self):
        self._next_id = 1
        self.users: dict[int, User] = {}

    def add(self, *, name, email, role, student_id=None, year=None, department=None, is_active=True) -> User:
        uid = self._next_id
        self._next_id += 1
        user = User(
            user_id=uid,
            name=name,
            email=email,
            role=role,
            student_id=student_id,
            year=year,
            department=department,
            is_active=is_active,
            created_at=FIXED_NOW - timedelta(days=30),
        )
        self.users[uid] = user
        return user

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def create_user(self, new_user, *, now):
        if self.get_by_email(new_user.email):
            raise ConflictError("A user with this email already exists")
        uid = self._next_id
        self._next_id += 1
        self.users[uid] = User(
            user_id=uid,
            name=new_user.name,
            email=new_user.email,
            role=new_user.role,
            external_id=new_user.external_id,
            profile_picture=new_user.profile_picture,
            last_login=now,
            created_at=now,
        )
        return uid

    def record_login(self, user_id, *, external_id, profile_picture, now):
        user = self.users[int(user_id)]
        self.users[user.user_id] = replace(
            user,
            external_id=external_id or user.external_id,
            profile_picture=profile_picture,
            last_login=now,
        )
        return True

    def update_profile(self, user_id, *, changes):
        user = self.users.get(int(user_id))
        if not user:
            return False
        changes = dict(changes)
        ec = user.emergency_contact
        ec = EmergencyContact(
            name=changes.pop("emergency_name", ec.name),
            relationship=changes.pop("emergency_relationship", ec.relationship),
            phone=changes.pop("emergency_phone", ec.phone),
        )
        self.users[user.user_id] = replace(user, emergency_contact=ec, **changes)
        return True

    def update_role(self, user_id, *, role, clear_student_fields, student_id=None, year=None):
        user = self.users.get(int(user_id))
        if not user:
            return False
        if clear_student_fields:
            user = replace(user, student_id=None, year=None)
        elif student_id is not None and year is not None:
            if any(u.student_id == student_id and u.user_id != user.user_id for u in self.users.values()):
                raise ConflictError("Student ID is already registered to another account")
            user = replace(user, student_id=student_id, year=year)
        self.users[user.user_id] = replace(user, role=role)
        return True

    def set_active(self, user_id, *, is_active):
        user = self.users.get(int(user_id))
        if not user:
            return False
        self.users[user.user_id] = replace(user, is_active=is_active)
        return True

    def list_users(self, *, role=None, search=None, offset=0, limit=20, order_by_name=False):
        rows = [u for u in self.users.values() if role is None or u.role == role]
        if search:
            needle = search.lower()
            rows = [
                u
                for u in rows
                if needle in u.name.lower() or needle in u.email.lower() or needle in (u.student_id or "").lower()
            ]
        if order_by_name:
            rows.sort(key=lambda u: (u.name, u.user_id))
        else:
            rows.sort(key=lambda u: u.user_id, reverse=True)
        return rows[offset : offset + limit], len(rows)

    def count_by_role(self):
        out: dict = {}
        for u in self.users.values():
            out[u.role] = out.get(u.role, 0) + 1
        return out


class FakeLeavesRepo:
    """In-memory store; transitions are compare-and-set under a lock."""

    def __init__(self, users: FakeUsersRepo):
        self._users = users
        self._next_id = 1
        self._lock = threading.Lock()
        self.leaves: dict[int, LeaveRequest] = {}

    def create_leave(self, *, student_id, from_date, to_date, reason, leave_type, contact, is_urgent, urgent_reason, now):
        with self._lock:
            rid = self._next_id
            self._next_id += 1
            self.leaves[rid] = LeaveRequest(
                request_id=rid,
                student_id=int(student_id),
                from_date=from_date,
                to_date=to_date,
                reason=reason,
                leave_type=leave_type,
                status=LeaveStatus.PENDING,
                contact=contact,
                is_urgent=is_urgent,
                urgent_reason=urgent_reason,
                created_at=now,
                updated_at=now,
            )
            return rid

    def get_leave(self, *, request_id):
        return self.leaves.get(int(request_id))

    def list_blocking_for_student(self, *, student_id):
        return [
            r
            for r in self.leaves.values()
            if r.student_id == int(student_id) and r.status in (LeaveStatus.PENDING, LeaveStatus.APPROVED)
        ]

    def _row(self, req: LeaveRequest) -> LeaveListRow:
        student = self._users.get_by_id(req.student_id)
        approver = self._users.get_by_id(req.approved_by) if req.approved_by else None
        return LeaveListRow(
            request=req,
            student_name=student.name if student else "",
            student_email=student.email if student else "",
            student_code=student.student_id if student else None,
            department=student.department if student else None,
            approver_name=approver.name if approver else None,
            approver_role=approver.role.value if approver else None,
        )

    def list_leave_requests(self, *, status=None, student_id=None, approved_by=None, limit=200):
        rows = [
            r
            for r in self.leaves.values()
            if (status is None or r.status == status)
            and (student_id is None or r.student_id == int(student_id))
            and (approved_by is None or r.approved_by == int(approved_by))
        ]
        rows.sort(key=lambda r: (r.created_at, r.request_id), reverse=True)
        return [self._row(r) for r in rows[:limit]]

    def search_leave_requests(self, *, filters, offset=0, limit=20):
        rows = [self._row(r) for r in self.leaves.values()]
        if filters.status is not None:
            rows = [x for x in rows if x.request.status == filters.status]
        if filters.leave_type is not None:
            rows = [x for x in rows if x.request.leave_type == filters.leave_type]
        if filters.department:
            rows = [x for x in rows if x.department == filters.department]
        if filters.student_id is not None:
            rows = [x for x in rows if x.request.student_id == int(filters.student_id)]
        if filters.created_from is not None:
            rows = [x for x in rows if x.request.created_at.date() >= filters.created_from]
        if filters.created_to is not None:
            rows = [x for x in rows if x.request.created_at.date() <= filters.created_to]
        rows.sort(key=lambda x: (x.request.created_at, x.request.request_id), reverse=True)
        return rows[offset : offset + limit], len(rows)

    def decide_leave(self, *, request_id, status, decided_by, remarks, decided_at):
        with self._lock:
            req = self.leaves.get(int(request_id))
            if not req or req.status != LeaveStatus.PENDING:
                return False
            self.leaves[req.request_id] = replace(
                req,
                status=status,
                approved_by=int(decided_by),
                approved_at=decided_at,
                remarks=remarks,
                updated_at=decided_at,
            )
            return True

    def delete_pending(self, *, request_id, student_id):
        with self._lock:
            req = self.leaves.get(int(request_id))
            if not req or req.student_id != int(student_id) or req.status != LeaveStatus.PENDING:
                return False
            del self.leaves[req.request_id]
            return True

    def get_report_rows(self, *, student_id=None, approved_by=None, status=None):
        out = []
        for r in self.leaves.values():
            if status is not None and r.status != status:
                continue
            if student_id is not None and r.student_id != int(student_id):
                continue
            if approved_by is not None and r.approved_by != int(approved_by):
                continue
            student = self._users.get_by_id(r.student_id)
            out.append(
                LeaveReportRow(
                    request_id=r.request_id,
                    student_id=r.student_id,
                    department=student.department if student else None,
                    status=r.status,
                    leave_type=r.leave_type,
                    from_date=r.from_date,
                    to_date=r.to_date,
                    is_urgent=r.is_urgent,
                    created_at=r.created_at,
                    approved_by=r.approved_by,
                    approved_at=r.approved_at,
                )
            )
        return out

    def count_by_status(self, *, student_id=None, approved_by=None):
        counts = {s: 0 for s in LeaveStatus}
        for r in self.get_report_rows(student_id=student_id, approved_by=approved_by):
            counts[r.status] += 1
        return counts

    def count_pending(self, *, today):
        pending = self.get_report_rows(status=LeaveStatus.PENDING)
        return PendingCounts(
            total=len(pending),
            urgent=sum(1 for r in pending if r.is_urgent),
            starting_today=sum(1 for r in pending if r.from_date == today),
        )

    def summarize(self, *, filters):
        rows, _ = self.search_leave_requests(filters=filters, limit=len(self.leaves) + 1)
        reqs = [x.request for x in rows]
        return LeaveSummary(
            total=len(reqs),
            pending=sum(1 for r in reqs if r.status == LeaveStatus.PENDING),
            approved=sum(1 for r in reqs if r.status == LeaveStatus.APPROVED),
            rejected=sum(1 for r in reqs if r.status == LeaveStatus.REJECTED),
            day_leaves=sum(1 for r in reqs if r.leave_type == LeaveType.DAY),
            home_leaves=sum(1 for r in reqs if r.leave_type == LeaveType.HOME),
            urgent=sum(1 for r in reqs if r.is_urgent),
        )


class FakeIdentityVerifier:
    """Accepts credentials of the form ``good:<email>:<name>``."""

    def verify(self, credential):
        kind, _, rest = credential.partition(":")
        if kind != "good":
            raise InvalidCredentialError("Invalid Google ID token")
        email, _, name = rest.partition(":")
        return VerifiedIdentity(email=email, display_name=name, external_id=f"g-{email}", avatar_url="")


def make_contact(**overrides) -> ContactDetails:
    values = dict(
        address="12 Hill Road, Margao, Goa",
        phone="9876543210",
        name="Asha Naik",
        relationship="Mother",
        emergency_phone="9123456780",
    )
    values.update(overrides)
    return ContactDetails(
        address=values["address"],
        phone=values["phone"],
        emergency_contact=EmergencyContact(
            name=values["name"],
            relationship=values["relationship"],
            phone=values["emergency_phone"],
        ),
    )


def make_draft(from_date: date, to_date: date, **overrides) -> LeaveDraft:
    values = dict(
        reason="Going home for a family function",
        leave_type=LeaveType.HOME.value,
        contact=make_contact(),
        is_urgent=False,
        urgent_reason="",
    )
    values.update(overrides)
    return LeaveDraft(from_date=from_date, to_date=to_date, **values)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def users_repo():
    return FakeUsersRepo()


@pytest.fixture
def leaves_repo(users_repo):
    return FakeLeavesRepo(users_repo)


@pytest.fixture
def people(users_repo):
    """One account per role plus a second student."""
    return {
        "student": users_repo.add(
            name="Ravi Kamat", email="ravi@nitgoa.ac.in", role=Role.STUDENT, student_id="21CSE1001", year=3, department="CSE"
        ),
        "other_student": users_repo.add(
            name="Meera Desai", email="meera@nitgoa.ac.in", role=Role.STUDENT, student_id="22ECE1002", year=2, department="ECE"
        ),
        "caretaker": users_repo.add(name="Suresh Gawas", email="caretaker@nitgoa.ac.in", role=Role.CARETAKER),
        "warden": users_repo.add(name="Dr. Priya Sawant", email="warden@nitgoa.ac.in", role=Role.WARDEN),
        "admin": users_repo.add(name="Admin", email="admin@nitgoa.ac.in", role=Role.ADMIN),
    }


@pytest.fixture
def actors(people):
    return {key: Actor(user_id=u.user_id, role=u.role) for key, u in people.items()}


@pytest.fixture
def token_service():
    return TokenService("test-jwt-secret")


@pytest.fixture
def container(users_repo, leaves_repo, token_service, fixed_now):
    return assemble_container(
        users_repo=users_repo,
        leaves_repo=leaves_repo,
        token_service=token_service,
        identity_verifier=FakeIdentityVerifier(),
        clock=lambda: fixed_now,
    )
