from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..auth.capabilities import Actor
from ..common.datetime_utils import now_local
from ..core import constants as C
from ..core.enums import Capability, LeaveStatus, LeaveType
from ..core.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    Violation,
)
from ..users.model import EmergencyContact
from ..users.repository import UserRepository
from .model import ContactDetails, LeaveDraft, LeaveFilters, LeaveListRow, LeaveRequest, Page
from .repository import LeaveRepository
from .validation import validate_draft, validate_remarks

logger = logging.getLogger(__name__)


def _clean_contact(contact: ContactDetails) -> ContactDetails:
    ec = contact.emergency_contact
    return ContactDetails(
        address=contact.address.strip(),
        phone=contact.phone.strip(),
        emergency_contact=EmergencyContact(
            name=ec.name.strip(),
            relationship=ec.relationship.strip(),
            phone=ec.phone.strip(),
        ),
    )


class LeaveService:
    """Leave request lifecycle: pending -> approved | rejected, or cancelled while pending.

    Every transition is a single conditional write in the repository; when
    that write matches nothing the request is re-read to tell a lost race
    (InvalidTransitionError) from a vanished request (NotFoundError).
    """

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

    def now(self) -> datetime:
        return self._clock()

    def _load(self, request_id: int) -> LeaveRequest:
        req = self._leaves.get_leave(request_id=int(request_id))
        if not req:
            raise NotFoundError("Leave request not found")
        return req

    def _stale(self, request_id: int, action: str) -> Exception:
        current = self._leaves.get_leave(request_id=int(request_id))
        if not current:
            return NotFoundError("Leave request not found")
        logger.info("Lost %s race on leave %s (now %s)", action, request_id, current.status.value)
        return InvalidTransitionError(f"Leave request is no longer pending (status: {current.status.value})")

    def submit(self, actor: Actor, draft: LeaveDraft) -> LeaveRequest:
        actor.require(Capability.SUBMIT_LEAVE, "Only students can apply for leave")

        now = self.now()
        violations: list[Violation] = []

        student = self._users.get_by_id(actor.user_id)
        if not student:
            raise NotFoundError("User not found")
        if not student.profile_complete:
            violations.append(
                Violation("profile", "incomplete_profile", "Complete your profile (student ID and year) before applying")
            )

        existing = self._leaves.list_blocking_for_student(student_id=actor.user_id)
        violations.extend(validate_draft(draft, existing, now))
        if violations:
            logger.info("Leave application by %s rejected: %s", actor.user_id, [v.code for v in violations])
        ValidationError.raise_if_any(violations)

        request_id = self._leaves.create_leave(
            student_id=actor.user_id,
            from_date=draft.from_date,
            to_date=draft.to_date,
            reason=draft.reason.strip(),
            leave_type=LeaveType(draft.leave_type.strip().lower()),
            contact=_clean_contact(draft.contact),
            is_urgent=draft.is_urgent is True,
            urgent_reason=(draft.urgent_reason or "").strip() if draft.is_urgent is True else "",
            now=now,
        )
        logger.info("Leave %s submitted by student %s (%s..%s)", request_id, actor.user_id, draft.from_date, draft.to_date)
        return self._load(request_id)

    def _decide(self, actor: Actor, request_id: int, status: LeaveStatus, remarks: Optional[str]) -> LeaveRequest:
        actor.require(Capability.APPROVE_LEAVE, "Access denied. You cannot approve leave requests.")

        remarks = (remarks or "").strip()
        ValidationError.raise_if_any(validate_remarks(remarks, required=status == LeaveStatus.REJECTED))

        req = self._load(request_id)
        if req.student_id == actor.user_id:
            raise AuthorizationError("You cannot decide your own leave request")
        if req.status.is_terminal:
            raise InvalidTransitionError("Leave request is not pending")

        decided = self._leaves.decide_leave(
            request_id=req.request_id,
            status=status,
            decided_by=actor.user_id,
            remarks=remarks,
            decided_at=self.now(),
        )
        if not decided:
            raise self._stale(req.request_id, status.value)

        logger.info("Leave %s %s by user %s (%s)", req.request_id, status.value, actor.user_id, actor.role.value)
        return self._load(req.request_id)

    def approve(self, actor: Actor, request_id: int, remarks: Optional[str] = "") -> LeaveRequest:
        return self._decide(actor, request_id, LeaveStatus.APPROVED, remarks)

    def reject(self, actor: Actor, request_id: int, remarks: Optional[str]) -> LeaveRequest:
        return self._decide(actor, request_id, LeaveStatus.REJECTED, remarks)

    def cancel(self, actor: Actor, request_id: int) -> None:
        req = self._load(request_id)
        if req.student_id != actor.user_id:
            raise AuthorizationError("You can only cancel your own leave requests")
        if req.status != LeaveStatus.PENDING:
            raise InvalidTransitionError("Only pending leave requests can be cancelled")

        if not self._leaves.delete_pending(request_id=req.request_id, student_id=actor.user_id):
            raise self._stale(req.request_id, "cancel")
        logger.info("Leave %s cancelled by student %s", req.request_id, actor.user_id)

    def view(self, actor: Actor, request_id: int) -> LeaveRequest:
        req = self._load(request_id)
        if req.student_id != actor.user_id and not actor.can(Capability.VIEW_ANY_LEAVE):
            raise AuthorizationError("Access denied")
        return req

    def list_my_requests(self, actor: Actor) -> Sequence[LeaveListRow]:
        actor.require(Capability.SUBMIT_LEAVE, "Only students have leave requests")
        return self._leaves.list_leave_requests(student_id=actor.user_id, limit=C.DEFAULT_LIST_LIMIT)

    def list_pending(self, actor: Actor) -> Sequence[LeaveListRow]:
        actor.require(Capability.APPROVE_LEAVE, "Access denied. You cannot approve leave requests.")
        return self._leaves.list_leave_requests(status=LeaveStatus.PENDING, limit=C.DEFAULT_LIST_LIMIT)

    def list_requests(
        self,
        actor: Actor,
        *,
        filters: LeaveFilters = LeaveFilters(),
        page: int = 1,
        limit: int = C.DEFAULT_PAGE_SIZE,
    ) -> Page:
        actor.require(Capability.AUDIT_LEAVES)

        page = max(1, int(page))
        limit = max(1, min(int(limit), C.MAX_PAGE_SIZE))
        rows, total = self._leaves.search_leave_requests(filters=filters, offset=(page - 1) * limit, limit=limit)
        return Page(items=list(rows), total=total, page=page, limit=limit)
