"""
Tests for employee and roster endpoints
"""
from fastapi import status


def test_create_and_get_employee(client):
    response = client.post(
        "/api/v1/employees",
        json={"emp_code": " EMP100 ", "name": "Asha Rao", "mobile_number": "9999999999"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["emp_code"] == "EMP100"
    assert data["active"] is True

    fetched = client.get(f"/api/v1/employees/{data['id']}")
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.json()["name"] == "Asha Rao"


def test_duplicate_employee_code(client, employee):
    response = client.post("/api/v1/employees", json={"emp_code": "EMP001", "name": "Copy"})
    assert response.status_code == status.HTTP_409_CONFLICT


def test_list_employees_filters_active(client, employee):
    client.post("/api/v1/employees", json={"emp_code": "EMP002", "name": "Left", "active": False})
    assert len(client.get("/api/v1/employees").json()) == 2
    active = client.get("/api/v1/employees", params={"active": True}).json()
    assert [e["emp_code"] for e in active] == ["EMP001"]


def test_get_missing_employee(client):
    response = client.get("/api/v1/employees/404")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Employee not found"


def test_roster_upsert_and_get(client, employee):
    response = client.put(
        f"/api/v1/rosters/{employee.id}",
        json={"start_time": "09:30", "end_time": "18:30", "grace_period_minutes": 5, "break_duration_minutes": 60},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["start_time"] == "09:30"
    assert data["expected_working_hours"] == 8.0

    response = client.put(
        f"/api/v1/rosters/{employee.id}",
        json={"start_time": "10:00", "end_time": "19:00"},
    )
    assert response.json()["id"] == data["id"]
    assert client.get(f"/api/v1/rosters/{employee.id}").json()["start_time"] == "10:00"


def test_roster_for_unknown_employee(client):
    response = client.put("/api/v1/rosters/55", json={"start_time": "09:00", "end_time": "18:00"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_missing_roster(client, employee):
    assert client.get(f"/api/v1/rosters/{employee.id}").status_code == status.HTTP_404_NOT_FOUND
