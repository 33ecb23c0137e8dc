"""Business rules for leave requests.

Pure functions: each returns the list of violations it found (empty when the
input is fine) so callers can report every problem in one response.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable, Optional

from ..common.validators import check_length, check_phone
from ..core import constants as C
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import Violation
from .model import ContactDetails, LeaveDraft, LeaveRequest

INVALID_DATE_RANGE = "invalid_date_range"
OVERLAPPING_REQUEST = "overlapping_request"
MISSING_URGENT_REASON = "missing_urgent_reason"
INVALID_CONTACT = "invalid_contact"
INVALID_REASON = "invalid_reason"
INVALID_TYPE = "invalid_type"
INVALID_REMARKS = "invalid_remarks"

BLOCKING_STATUSES = frozenset({LeaveStatus.PENDING, LeaveStatus.APPROVED})


def _present(items: Iterable[Optional[Violation]]) -> list[Violation]:
    return [v for v in items if v is not None]


def validate_date_range(from_date: Optional[date], to_date: Optional[date], now: datetime) -> list[Violation]:
    if from_date is None or to_date is None:
        out = []
        if from_date is None:
            out.append(Violation("fromDate", INVALID_DATE_RANGE, "Valid from date is required"))
        if to_date is None:
            out.append(Violation("toDate", INVALID_DATE_RANGE, "Valid to date is required"))
        return out

    out = []
    if datetime.combine(from_date, time.min) < now:
        out.append(Violation("fromDate", INVALID_DATE_RANGE, "From date cannot be in the past"))
    if to_date < from_date:
        out.append(Violation("toDate", INVALID_DATE_RANGE, "To date must be after or equal to from date"))
    return out


def validate_no_overlap(existing: Iterable[LeaveRequest], from_date: date, to_date: date) -> list[Violation]:
    """Pending and approved requests block; rejected ones do not."""
    clashes = [r for r in existing if r.status in BLOCKING_STATUSES and r.overlaps(from_date, to_date)]
    if not clashes:
        return []
    ids = ", ".join(str(r.request_id) for r in clashes)
    return [
        Violation(
            "fromDate",
            OVERLAPPING_REQUEST,
            f"You have overlapping leave requests for these dates (request {ids})",
        )
    ]


def validate_urgency(is_urgent: object, urgent_reason: Optional[str]) -> list[Violation]:
    if not isinstance(is_urgent, bool):
        return [Violation("isUrgent", "invalid_field", "isUrgent must be true or false")]
    reason = (urgent_reason or "").strip()
    if is_urgent and not reason:
        return [Violation("urgentReason", MISSING_URGENT_REASON, "Urgent reason is required when marking as urgent")]
    return _present([check_length(reason, "urgentReason", max_len=C.URGENT_REASON_MAX, label="Urgent reason")])


def validate_contact_block(block: Optional[ContactDetails]) -> list[Violation]:
    if block is None:
        return [Violation("contactDetails", INVALID_CONTACT, "Contact details during leave are required")]

    ec = block.emergency_contact
    return _present(
        [
            check_length(
                block.address,
                "contactDetails.address",
                min_len=C.ADDRESS_MIN,
                max_len=C.ADDRESS_MAX,
                code=INVALID_CONTACT,
                label="Address",
            ),
            check_phone(block.phone, "contactDetails.phone", code=INVALID_CONTACT, label="Contact phone"),
            check_length(
                ec.name,
                "contactDetails.emergencyContact.name",
                min_len=C.EMERGENCY_NAME_MIN,
                max_len=C.EMERGENCY_NAME_MAX,
                code=INVALID_CONTACT,
                label="Emergency contact name",
            ),
            check_length(
                ec.relationship,
                "contactDetails.emergencyContact.relationship",
                min_len=C.RELATIONSHIP_MIN,
                max_len=C.RELATIONSHIP_MAX,
                code=INVALID_CONTACT,
                label="Emergency contact relationship",
            ),
            check_phone(
                ec.phone,
                "contactDetails.emergencyContact.phone",
                code=INVALID_CONTACT,
                label="Emergency contact phone",
            ),
        ]
    )


def validate_reason(reason: Optional[str]) -> list[Violation]:
    return _present(
        [
            check_length(
                reason,
                "reason",
                min_len=C.REASON_MIN,
                max_len=C.REASON_MAX,
                code=INVALID_REASON,
                label="Reason",
            )
        ]
    )


def validate_leave_type(value: Optional[str]) -> list[Violation]:
    try:
        LeaveType((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in LeaveType)
        return [Violation("type", INVALID_TYPE, f"Leave type must be one of: {allowed}")]
    return []


def validate_remarks(remarks: Optional[str], *, required: bool) -> list[Violation]:
    if required:
        return _present(
            [
                check_length(
                    remarks,
                    "remarks",
                    min_len=C.REJECT_REMARKS_MIN,
                    max_len=C.REMARKS_MAX,
                    code=INVALID_REMARKS,
                    label="Rejection remarks",
                )
            ]
        )
    return _present([check_length(remarks, "remarks", max_len=C.REMARKS_MAX, code=INVALID_REMARKS, label="Remarks")])


def validate_draft(draft: LeaveDraft, existing: Iterable[LeaveRequest], now: datetime) -> list[Violation]:
    """Run every rule against a draft; overlap is only checked for a usable date range."""
    violations: list[Violation] = []
    date_violations = validate_date_range(draft.from_date, draft.to_date, now)
    violations.extend(date_violations)
    violations.extend(validate_reason(draft.reason))
    violations.extend(validate_leave_type(draft.leave_type))
    violations.extend(validate_contact_block(draft.contact))
    violations.extend(validate_urgency(draft.is_urgent, draft.urgent_reason))

    if draft.from_date is not None and draft.to_date is not None and draft.to_date >= draft.from_date:
        violations.extend(validate_no_overlap(existing, draft.from_date, draft.to_date))
    return violations
