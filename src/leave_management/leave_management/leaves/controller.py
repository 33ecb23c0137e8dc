from __future__ import annotations

from datetime import date
from typing import Optional

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import parse_optional_date
from ..common.web import json_body, make_login_required, query_int
from ..container import Container
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import ValidationError
from ..users.model import EmergencyContact
from .model import ContactDetails, LeaveDraft, LeaveFilters


def _date_or_none(value) -> Optional[date]:
    try:
        return parse_optional_date(str(value)) if value else None
    except ValueError:
        return None


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def draft_from_json(data: dict) -> LeaveDraft:
    contact = data.get("contactDetails") if isinstance(data.get("contactDetails"), dict) else {}
    emergency = contact.get("emergencyContact") if isinstance(contact.get("emergencyContact"), dict) else {}
    return LeaveDraft(
        from_date=_date_or_none(data.get("fromDate")),
        to_date=_date_or_none(data.get("toDate")),
        reason=_text(data, "reason"),
        leave_type=_text(data, "type"),
        contact=ContactDetails(
            address=_text(contact, "address"),
            phone=_text(contact, "phone"),
            emergency_contact=EmergencyContact(
                name=_text(emergency, "name"),
                relationship=_text(emergency, "relationship"),
                phone=_text(emergency, "phone"),
            ),
        ),
        is_urgent=data.get("isUrgent", False),
        urgent_reason=_text(data, "urgentReason"),
    )


def _enum_arg(enum_cls, name: str):
    raw = (request.args.get(name) or "").strip().lower()
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        raise ValidationError.single(name, "invalid_field", f"Invalid {name}: {raw}")


def _date_arg(name: str) -> Optional[date]:
    raw = request.args.get(name)
    try:
        return parse_optional_date(raw)
    except ValueError:
        raise ValidationError.single(name, "invalid_field", f"{name} must be YYYY-MM-DD")


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)
    leaves = container.leave_service

    @app.route("/api/leaves", methods=["POST"], endpoint="apply_leave")
    @login_required
    def apply_leave():
        req = leaves.submit(g.actor, draft_from_json(json_body()))
        return (
            jsonify(
                {
                    "message": "Leave request submitted successfully",
                    "leaveRequest": req.to_dict(now=leaves.now()),
                }
            ),
            201,
        )

    @app.route("/api/leaves/mine", methods=["GET"], endpoint="my_leaves")
    @login_required
    def my_leaves():
        now = leaves.now()
        rows = leaves.list_my_requests(g.actor)
        return jsonify({"leaveRequests": [r.to_dict(now=now) for r in rows]})

    @app.route("/api/leaves/pending", methods=["GET"], endpoint="pending_leaves")
    @login_required
    def pending_leaves():
        now = leaves.now()
        rows = leaves.list_pending(g.actor)
        return jsonify({"leaveRequests": [r.to_dict(now=now) for r in rows]})

    @app.route("/api/leaves/<int:request_id>", methods=["GET"], endpoint="view_leave")
    @login_required
    def view_leave(request_id: int):
        req = leaves.view(g.actor, request_id)
        return jsonify({"leaveRequest": req.to_dict(now=leaves.now())})

    @app.route("/api/leaves/<int:request_id>/approve", methods=["PUT"], endpoint="approve_leave")
    @login_required
    def approve_leave(request_id: int):
        req = leaves.approve(g.actor, request_id, _text(json_body(), "remarks"))
        return jsonify({"message": "Leave request approved successfully", "leaveRequest": req.to_dict(now=leaves.now())})

    @app.route("/api/leaves/<int:request_id>/reject", methods=["PUT"], endpoint="reject_leave")
    @login_required
    def reject_leave(request_id: int):
        req = leaves.reject(g.actor, request_id, _text(json_body(), "remarks"))
        return jsonify({"message": "Leave request rejected successfully", "leaveRequest": req.to_dict(now=leaves.now())})

    @app.route("/api/leaves/<int:request_id>", methods=["DELETE"], endpoint="cancel_leave")
    @login_required
    def cancel_leave(request_id: int):
        leaves.cancel(g.actor, request_id)
        return jsonify({"message": "Leave request cancelled successfully"})

    @app.route("/api/admin/leaves", methods=["GET"], endpoint="admin_leaves")
    @login_required
    def admin_leaves():
        filters = LeaveFilters(
            status=_enum_arg(LeaveStatus, "status"),
            leave_type=_enum_arg(LeaveType, "type"),
            department=(request.args.get("department") or "").strip() or None,
            created_from=_date_arg("fromDate"),
            created_to=_date_arg("toDate"),
        )
        page = leaves.list_requests(
            g.actor,
            filters=filters,
            page=query_int("page", 1),
            limit=query_int("limit", DEFAULT_PAGE_SIZE),
        )
        now = leaves.now()
        return jsonify({"leaveRequests": [r.to_dict(now=now) for r in page.items], "pagination": page.pagination()})
