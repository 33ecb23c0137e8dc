from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from flask import Flask, g, jsonify, request

from ..auth.capabilities import capabilities_for
from ..common.datetime_utils import parse_optional_date
from ..common.web import json_body, make_login_required, query_int
from ..container import Container
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .service import ProfileUpdate

logger = logging.getLogger(__name__)


def _optional_text(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError.single(key, "invalid_field", f"{key} must be a string")
    return value


def _optional_year(data: dict) -> Optional[int]:
    value = data.get("year")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError.single("year", "invalid_field", "Year must be a number")


def profile_update_from_json(data: dict) -> ProfileUpdate:
    emergency = data.get("emergencyContact") if isinstance(data.get("emergencyContact"), dict) else {}
    return ProfileUpdate(
        name=_optional_text(data, "name"),
        contact_number=_optional_text(data, "contactNumber"),
        department=_optional_text(data, "department"),
        hostel=_optional_text(data, "hostel"),
        room_number=_optional_text(data, "roomNumber"),
        emergency_name=_optional_text(emergency, "name"),
        emergency_relationship=_optional_text(emergency, "relationship"),
        emergency_phone=_optional_text(emergency, "phone"),
        student_id=_optional_text(data, "studentId"),
        year=_optional_year(data),
    )


def _role_value(raw) -> Role:
    try:
        return Role(str(raw or "").strip().lower())
    except ValueError:
        raise ValidationError.single("role", "invalid_field", "Invalid role specified")


def _body_date(data: dict, key: str) -> Optional[date]:
    value = data.get(key)
    try:
        return parse_optional_date(value) if isinstance(value, str) else None
    except ValueError:
        return None


def _body_int(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError.single(key, "invalid_field", f"{key} must be a number")


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)
    auth = container.auth_service
    users = container.user_service
    reports = container.report_service

    # --- auth ---------------------------------------------------------------

    @app.route("/api/auth/google", methods=["POST"], endpoint="google_sign_in")
    def google_sign_in():
        credential = json_body().get("credential")
        if not isinstance(credential, str) or not credential.strip():
            raise ValidationError.single("credential", "invalid_field", "Google credential is required")

        result = auth.sign_in(credential.strip())
        return jsonify(
            {
                "message": "Authentication successful",
                "token": result.token,
                "user": result.user.to_dict(),
                "isNewUser": result.created,
            }
        )

    @app.route("/api/auth/verify", methods=["GET"], endpoint="verify_token")
    @login_required
    def verify_token():
        caps = sorted(c.value for c in capabilities_for(g.actor.role))
        return jsonify({"valid": True, "user": g.current_user.to_dict(), "capabilities": caps})

    @app.route("/api/auth/refresh", methods=["POST"], endpoint="refresh_token")
    @login_required
    def refresh_token():
        return jsonify({"message": "Token refreshed successfully", "token": auth.refresh(g.actor)})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    @login_required
    def logout():
        # Tokens are stateless; the client discards its copy.
        logger.info("User %s signed out", g.actor.user_id)
        return jsonify({"message": "Logged out successfully"})

    # --- self service -------------------------------------------------------

    @app.route("/api/users/profile", methods=["GET"], endpoint="get_profile")
    @login_required
    def get_profile():
        return jsonify({"user": users.get_profile(g.actor).to_dict()})

    @app.route("/api/users/profile", methods=["PUT"], endpoint="update_profile")
    @login_required
    def update_profile():
        user = users.update_profile(g.actor, profile_update_from_json(json_body()))
        return jsonify({"message": "Profile updated successfully", "user": user.to_dict()})

    @app.route("/api/users/dashboard", methods=["GET"], endpoint="dashboard")
    @login_required
    def dashboard():
        return jsonify({"dashboard": reports.dashboard(g.actor)})

    @app.route("/api/users/stats", methods=["GET"], endpoint="user_stats")
    @login_required
    def user_stats():
        return jsonify({"stats": reports.stats(g.actor)})

    @app.route("/api/users/search", methods=["GET"], endpoint="search_users")
    @login_required
    def search_users():
        role_arg = request.args.get("role")
        found = users.search_users(
            g.actor,
            query=request.args.get("query"),
            role=_role_value(role_arg) if role_arg else None,
        )
        return jsonify({"users": [u.to_search_dict() for u in found]})

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="get_user")
    @login_required
    def get_user(user_id: int):
        return jsonify({"user": users.get_user(g.actor, user_id).to_dict()})

    # --- admin --------------------------------------------------------------

    @app.route("/api/admin/stats", methods=["GET"], endpoint="admin_stats")
    @login_required
    def admin_stats():
        return jsonify(reports.system_stats(g.actor))

    @app.route("/api/admin/reports/generate", methods=["POST"], endpoint="admin_generate_report")
    @login_required
    def admin_generate_report():
        data = json_body()
        report = reports.generate_report(
            g.actor,
            start=_body_date(data, "startDate"),
            end=_body_date(data, "endDate"),
            report_type=data.get("type") if isinstance(data.get("type"), str) else None,
            department=_optional_text(data, "department"),
            student_id=_body_int(data, "studentId"),
        )
        return jsonify({"message": "Report generated successfully", "report": report})

    @app.route("/api/admin/users", methods=["GET"], endpoint="admin_users")
    @login_required
    def admin_users():
        role_arg = request.args.get("role")
        result = users.list_users(
            g.actor,
            role=_role_value(role_arg) if role_arg else None,
            search=request.args.get("search"),
            page=query_int("page", 1),
            limit=query_int("limit", DEFAULT_PAGE_SIZE),
        )
        return jsonify(
            {
                "users": [u.to_dict() for u in result["users"]],
                "pagination": result["pagination"],
            }
        )

    @app.route("/api/admin/users/<int:user_id>/role", methods=["PUT"], endpoint="admin_update_role")
    @login_required
    def admin_update_role(user_id: int):
        data = json_body()
        user = users.update_role(
            g.actor,
            user_id,
            _role_value(data.get("role")),
            student_id=_optional_text(data, "studentId"),
            year=_optional_year(data),
        )
        return jsonify({"message": "User role updated successfully", "user": user.to_dict()})

    @app.route("/api/admin/users/<int:user_id>/status", methods=["PUT"], endpoint="admin_update_status")
    @login_required
    def admin_update_status(user_id: int):
        is_active = json_body().get("isActive")
        if not isinstance(is_active, bool):
            raise ValidationError.single("isActive", "invalid_field", "isActive must be true or false")

        user = users.update_active_status(g.actor, user_id, is_active)
        state = "activated" if is_active else "deactivated"
        return jsonify({"message": f"User {state} successfully", "user": user.to_dict()})
