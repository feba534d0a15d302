"""
Tests for gate pass endpoints
"""
from fastapi import status

from app.api.v1 import gate_passes as gate_passes_api
from app.core.exceptions import PassCodeCollision
from app.services.gate_pass_service import create_gate_pass as real_create_gate_pass

URL = "/api/v1/gate-passes"


def issue(client, employee, validity="single", **extra):
    body = {"employee_id": employee.id, "validity": validity}
    body.update(extra)
    response = client.post(URL, json=body)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


def test_create_gate_pass(client, employee):
    data = issue(client, employee, validity="day", type="exit", reason="  Bank visit  ")
    assert data["status"] == "active"
    assert data["type"] == "exit"
    assert data["reason"] == "Bank visit"
    assert len(data["pass_code"]) == 12
    assert data["expires_at"].startswith("2025-03-10T23:59:59.999")


def test_create_gate_pass_unknown_employee(client):
    response = client.post(URL, json={"employee_id": 77, "validity": "single"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_create_gate_pass_retries_code_collision(client, employee, monkeypatch):
    calls = []

    def collide_once(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise PassCodeCollision()
        return real_create_gate_pass(*args, **kwargs)

    monkeypatch.setattr(gate_passes_api, "create_gate_pass", collide_once)
    issue(client, employee)
    assert len(calls) == 2


def test_create_gate_pass_gives_up_after_configured_attempts(client, employee, monkeypatch):
    def always_collide(*args, **kwargs):
        raise PassCodeCollision()

    monkeypatch.setattr(gate_passes_api, "create_gate_pass", always_collide)
    response = client.post(URL, json={"employee_id": employee.id, "validity": "single"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "PASS_CODE_COLLISION"


def test_verify_single_use_pass(client, employee):
    code = issue(client, employee)["pass_code"]

    first = client.post(f"{URL}/verify", json={"code": code.lower().replace("-", "")})
    assert first.status_code == status.HTTP_200_OK
    data = first.json()
    assert data["verified"] is True
    assert data["outcome"] == "verified"
    assert data["pass"]["status"] == "used"

    second = client.post(f"{URL}/verify", json={"code": code}).json()
    assert second["verified"] is False
    assert second["outcome"] == "already_used"
    assert second["message"] == "Pass already used. This single-use pass has already been scanned."


def test_verify_unknown_code(client):
    data = client.post(f"{URL}/verify", json={"code": "ZZZZ-ZZZZ-ZZ"}).json()
    assert data["verified"] is False
    assert data["outcome"] == "not_found"
    assert data["pass"] is None


def test_verify_expired_pass(client, employee, clock):
    code = issue(client, employee)["pass_code"]
    clock.advance(hours=25)
    data = client.post(f"{URL}/verify", json={"code": code}).json()
    assert data["outcome"] == "expired"
    assert data["pass"]["status"] == "expired"


def test_usage_flow(client, employee, clock):
    pass_id = issue(client, employee, validity="day")["id"]

    response = client.post(f"{URL}/{pass_id}/usage", json={"usage_type": "return"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "INVALID_PASS_USAGE"

    exit_response = client.post(f"{URL}/{pass_id}/usage", json={"usage_type": "exit"})
    assert exit_response.status_code == status.HTTP_200_OK
    assert exit_response.json()["exit_time"] is not None

    clock.advance(minutes=30)
    return_response = client.post(f"{URL}/{pass_id}/usage", json={"usage_type": "return"})
    assert return_response.status_code == status.HTTP_200_OK
    assert return_response.json()["return_time"] is not None


def test_revoke_and_list(client, employee):
    pass_id = issue(client, employee, validity="week")["id"]
    issue(client, employee, validity="day")

    response = client.post(f"{URL}/{pass_id}/revoke", json={"reason": "Lost"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "revoked"

    usage = client.post(f"{URL}/{pass_id}/usage", json={"usage_type": "exit"})
    assert usage.status_code == status.HTTP_403_FORBIDDEN

    listing = client.get(URL, params={"status": "revoked"}).json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == pass_id
    assert client.get(URL, params={"employee_id": employee.id}).json()["total"] == 2


def test_get_gate_pass(client, employee):
    pass_id = issue(client, employee)["id"]
    assert client.get(f"{URL}/{pass_id}").json()["id"] == pass_id
    missing = client.get(f"{URL}/999")
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json()["code"] == "PASS_NOT_FOUND"


def test_expire_overdue(client, employee, clock):
    issue(client, employee, validity="day")
    issue(client, employee, validity="week")
    clock.advance(days=2)
    response = client.post(f"{URL}/expire-overdue")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["expired"] == 1


def test_get_overdue_pass_reports_expired(client, employee, clock):
    pass_id = issue(client, employee, validity="day")["id"]
    clock.advance(days=1)
    data = client.get(f"{URL}/{pass_id}").json()
    assert data["status"] == "expired"


def test_revoke_overdue_pass_is_rejected_as_expired(client, employee, clock):
    pass_id = issue(client, employee, validity="day")["id"]
    clock.advance(days=1)
    response = client.post(f"{URL}/{pass_id}/revoke", json={"reason": "Too late"})
    assert response.status_code == status.HTTP_410_GONE
    assert response.json()["code"] == "PASS_EXPIRED"
    assert client.get(f"{URL}/{pass_id}").json()["status"] == "expired"


def test_create_with_expected_trip_times(client, employee):
    data = issue(
        client,
        employee,
        expected_exit_time="2025-03-10T11:00:00+05:30",
        expected_return_time="2025-03-10T12:30:00+05:30",
    )
    assert data["expected_exit_time"] == "2025-03-10T11:00:00+05:30"
    assert data["expected_return_time"] == "2025-03-10T12:30:00+05:30"


def test_create_rejects_inverted_or_naive_trip_times(client, employee):
    inverted = client.post(
        URL,
        json={
            "employee_id": employee.id,
            "validity": "single",
            "expected_exit_time": "2025-03-10T12:30:00+05:30",
            "expected_return_time": "2025-03-10T11:00:00+05:30",
        },
    )
    assert inverted.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    naive = client.post(
        URL,
        json={"employee_id": employee.id, "validity": "single", "expected_exit_time": "2025-03-10T11:00:00"},
    )
    assert naive.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
