from __future__ import annotations

import pytest

from src.leave_management.leave_management.core.enums import Role
from src.leave_management.leave_management.main import create_app


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container=container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth(people, token_service):
    def header(key):
        user = people[key]
        return {"Authorization": f"Bearer {token_service.issue(user_id=user.user_id, role=user.role)}"}

    return header


LEAVE_BODY = {
    "fromDate": "2026-03-10",
    "toDate": "2026-03-12",
    "reason": "Going home for a family function",
    "type": "home",
    "contactDetails": {
        "address": "12 Hill Road, Margao, Goa",
        "phone": "9876543210",
        "emergencyContact": {"name": "Asha Naik", "relationship": "Mother", "phone": "9123456780"},
    },
}


def test_health(client):
    assert client.get("/api/health").get_json()["status"] == "OK"


def test_requests_without_token_are_401(client):
    resp = client.get("/api/leaves/mine")
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "token_invalid"


def test_google_sign_in_then_verify(client):
    resp = client.post("/api/auth/google", json={"credential": "good:anya@nitgoa.ac.in:Anya Prabhu"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["isNewUser"] is True
    assert body["user"]["role"] == "student"

    verified = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {body['token']}"})
    assert verified.status_code == 200
    assert verified.get_json()["capabilities"] == ["submit_leave"]


def test_google_sign_in_requires_credential(client):
    resp = client.post("/api/auth/google", json={})
    assert resp.status_code == 400
    assert resp.get_json()["violations"][0]["field"] == "credential"


def test_outside_domain_sign_in_is_403(client):
    resp = client.post("/api/auth/google", json={"credential": "good:x@gmail.com:X"})
    assert resp.status_code == 403


def test_full_leave_flow(client, auth):
    created = client.post("/api/leaves", json=LEAVE_BODY, headers=auth("student"))
    assert created.status_code == 201
    leave = created.get_json()["leaveRequest"]
    assert leave["status"] == "pending"
    assert leave["duration"] == 3

    overlap = client.post("/api/leaves", json={**LEAVE_BODY, "fromDate": "2026-03-11", "toDate": "2026-03-13"}, headers=auth("student"))
    assert overlap.status_code == 400
    assert overlap.get_json()["violations"][0]["code"] == "overlapping_request"

    pending = client.get("/api/leaves/pending", headers=auth("caretaker")).get_json()["leaveRequests"]
    assert [p["id"] for p in pending] == [leave["id"]]
    assert pending[0]["student"]["name"] == "Ravi Kamat"

    approved = client.put(
        f"/api/leaves/{leave['id']}/approve", json={"remarks": "Approved, safe travels"}, headers=auth("caretaker")
    )
    assert approved.status_code == 200
    assert approved.get_json()["leaveRequest"]["status"] == "approved"

    again = client.put(f"/api/leaves/{leave['id']}/reject", json={"remarks": "Too late now"}, headers=auth("warden"))
    assert again.status_code == 409
    assert again.get_json()["code"] == "invalid_transition"

    cancel = client.delete(f"/api/leaves/{leave['id']}", headers=auth("student"))
    assert cancel.status_code == 409


def test_invalid_submission_reports_all_violations(client, auth):
    body = {**LEAVE_BODY, "fromDate": "2026-03-01", "reason": "short", "isUrgent": True}
    resp = client.post("/api/leaves", json=body, headers=auth("student"))

    assert resp.status_code == 400
    codes = {v["code"] for v in resp.get_json()["violations"]}
    assert codes == {"invalid_date_range", "invalid_reason", "missing_urgent_reason"}


def test_student_cannot_see_pending_queue(client, auth):
    assert client.get("/api/leaves/pending", headers=auth("student")).status_code == 403


def test_missing_leave_is_404(client, auth):
    assert client.get("/api/leaves/999", headers=auth("admin")).status_code == 404


def test_owner_cancels(client, auth):
    leave = client.post("/api/leaves", json=LEAVE_BODY, headers=auth("student")).get_json()["leaveRequest"]

    assert client.delete(f"/api/leaves/{leave['id']}", headers=auth("other_student")).status_code == 403
    assert client.delete(f"/api/leaves/{leave['id']}", headers=auth("student")).status_code == 200
    assert client.get(f"/api/leaves/{leave['id']}", headers=auth("student")).status_code == 404


def test_profile_update(client, auth):
    resp = client.put("/api/users/profile", json={"hostel": "Block B", "roomNumber": "B-204"}, headers=auth("student"))
    assert resp.status_code == 200
    assert resp.get_json()["user"]["roomNumber"] == "B-204"

    bad = client.put("/api/users/profile", json={"contactNumber": "12"}, headers=auth("student"))
    assert bad.status_code == 400


def test_admin_user_management(client, auth, people):
    listing = client.get("/api/admin/users?role=student&limit=1", headers=auth("admin")).get_json()
    assert listing["pagination"]["totalUsers"] == 2

    own = client.put(f"/api/admin/users/{people['admin'].user_id}/role", json={"role": "warden"}, headers=auth("admin"))
    assert own.status_code == 403

    bad_role = client.put(f"/api/admin/users/{people['caretaker'].user_id}/role", json={"role": "dean"}, headers=auth("admin"))
    assert bad_role.status_code == 400

    promoted = client.put(
        f"/api/admin/users/{people['caretaker'].user_id}/role", json={"role": "warden"}, headers=auth("admin")
    )
    assert promoted.get_json()["user"]["role"] == Role.WARDEN.value

    # The caretaker's old token no longer matches the stored role.
    assert client.get("/api/users/profile", headers=auth("caretaker")).status_code == 401

    off = client.put(f"/api/admin/users/{people['other_student'].user_id}/status", json={"isActive": False}, headers=auth("admin"))
    assert off.get_json()["user"]["isActive"] is False
    assert client.get("/api/users/profile", headers=auth("other_student")).status_code == 403


def test_admin_endpoints_are_forbidden_for_wardens(client, auth):
    assert client.get("/api/admin/stats", headers=auth("warden")).status_code == 403
    assert client.get("/api/admin/users", headers=auth("warden")).status_code == 403
    assert client.get("/api/admin/leaves", headers=auth("warden")).status_code == 403


def test_admin_stats_and_leaves(client, auth):
    client.post("/api/leaves", json=LEAVE_BODY, headers=auth("student"))

    stats = client.get("/api/admin/stats", headers=auth("admin")).get_json()
    assert stats["stats"]["leaveRequests"]["pending"] == 1

    leaves = client.get("/api/admin/leaves?status=pending&department=CSE", headers=auth("admin")).get_json()
    assert leaves["pagination"]["totalRequests"] == 1

    bad = client.get("/api/admin/leaves?status=cancelled", headers=auth("admin"))
    assert bad.status_code == 400


def test_user_stats_and_dashboard(client, auth):
    client.post("/api/leaves", json=LEAVE_BODY, headers=auth("student"))

    assert client.get("/api/users/stats", headers=auth("student")).get_json()["stats"]["pendingRequests"] == 1
    assert client.get("/api/users/dashboard", headers=auth("warden")).get_json()["dashboard"]["pendingRequests"] == 1


def test_missing_leave_type_is_reported_not_defaulted(client, auth, leaves_repo):
    body = {k: v for k, v in LEAVE_BODY.items() if k != "type"}
    resp = client.post("/api/leaves", json=body, headers=auth("student"))

    assert resp.status_code == 400
    assert [(v["field"], v["code"]) for v in resp.get_json()["violations"]] == [("type", "invalid_type")]
    assert leaves_repo.leaves == {}


def test_non_boolean_urgent_flag_is_reported(client, auth):
    resp = client.post("/api/leaves", json={**LEAVE_BODY, "isUrgent": "yes"}, headers=auth("student"))

    assert resp.status_code == 400
    assert [(v["field"], v["code"]) for v in resp.get_json()["violations"]] == [("isUrgent", "invalid_field")]


def test_same_day_leave_is_rejected(client, auth):
    body = {**LEAVE_BODY, "fromDate": "2026-03-09", "toDate": "2026-03-09"}
    resp = client.post("/api/leaves", json=body, headers=auth("student"))

    assert resp.status_code == 400
    assert resp.get_json()["violations"][0]["field"] == "fromDate"


def test_user_search_for_approvers(client, auth):
    resp = client.get("/api/users/search?query=ravi", headers=auth("warden"))

    assert resp.status_code == 200
    assert resp.get_json()["users"] == [
        {
            "id": 1,
            "name": "Ravi Kamat",
            "email": "ravi@nitgoa.ac.in",
            "studentId": "21CSE1001",
            "department": "CSE",
            "year": 3,
            "hostel": None,
            "roomNumber": None,
        }
    ]
    assert client.get("/api/users/search?query=ravi", headers=auth("student")).status_code == 403


def test_admin_generates_report(client, auth, people):
    client.post("/api/leaves", json=LEAVE_BODY, headers=auth("student"))
    body = {"startDate": "2026-03-01", "endDate": "2026-03-31"}

    summary = client.post("/api/admin/reports/generate", json={**body, "type": "summary"}, headers=auth("admin"))
    assert summary.status_code == 200
    assert summary.get_json()["report"]["data"]["pending"] == 1

    student = client.post(
        "/api/admin/reports/generate",
        json={**body, "type": "student", "studentId": people["student"].user_id},
        headers=auth("admin"),
    )
    assert len(student.get_json()["report"]["data"]) == 1

    missing = client.post("/api/admin/reports/generate", json={**body, "type": "department"}, headers=auth("admin"))
    assert missing.status_code == 400
    assert missing.get_json()["violations"][0]["field"] == "department"

    assert client.post("/api/admin/reports/generate", json={**body, "type": "summary"}, headers=auth("warden")).status_code == 403


def test_admin_restores_student_role_with_student_fields(client, auth, people):
    target = people["student"].user_id
    client.put(f"/api/admin/users/{target}/role", json={"role": "caretaker"}, headers=auth("admin"))

    resp = client.put(
        f"/api/admin/users/{target}/role",
        json={"role": "student", "studentId": "21CSE1001", "year": 3},
        headers=auth("admin"),
    )

    assert resp.status_code == 200
    assert resp.get_json()["user"]["studentId"] == "21CSE1001"
    assert resp.get_json()["user"]["profileComplete"] is True
