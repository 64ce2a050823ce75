from datetime import date, timedelta

from hrpay_api.common.params import utc_today
from hrpay_api.extensions import engine_options, normalize_db_url

ADMIN = {"roles": ["admin"]}


def _next_monday(after: date) -> date:
    d = after + timedelta(days=1)
    while d.weekday() != 0:
        d += timedelta(days=1)
    return d


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json() == {"success": True, "data": {"status": "ok"}}


def test_requires_token_and_permission(client, make_employee, auth_header):
    emp = make_employee()
    assert client.get("/api/v1/salary/components").status_code == 401

    r = client.get("/api/v1/salary/components", headers=auth_header(emp.id, perms=["leave.self"]))
    assert r.status_code == 403
    assert r.get_json()["error"] == {"message": "Forbidden", "code": "FORBIDDEN"}

    r = client.get("/api/v1/salary/components", headers=auth_header(emp.id, perms=["payroll.*"]))
    assert r.status_code == 200
    assert r.get_json()["data"] == []


def test_error_envelope(client, make_employee, auth_header):
    emp = make_employee()
    hdr = auth_header(emp.id, **ADMIN)

    r = client.post("/api/v1/payroll/generate", json={"employee_id": emp.id, "month": 13, "year": 2025}, headers=hdr)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

    r = client.post("/api/v1/payroll/generate", json={"employee_id": emp.id, "month": 6, "year": 2025}, headers=hdr)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "COMPUTATION_ERROR"

    r = client.get("/api/v1/leave/requests/999", headers=hdr)
    assert r.status_code == 404
    assert r.get_json() == {"success": False, "error": {"message": "Leave request not found", "code": "NOT_FOUND"}}


def test_payroll_flow(client, make_employee, auth_header):
    emp = make_employee("Asha Rao")
    hdr = auth_header(emp.id, **ADMIN)

    basic = client.post("/api/v1/salary/components", headers=hdr,
                        json={"name": "Basic Salary", "category": "Earning", "is_pro_rata": True}).get_json()["data"]
    hra = client.post("/api/v1/salary/components", headers=hdr,
                      json={"name": "HRA", "category": "Earning", "is_pro_rata": True}).get_json()["data"]
    r = client.put(f"/api/v1/salary/profiles/{emp.id}", headers=hdr, json={"components": [
        {"component_id": basic["id"], "calculation_type": "Fixed", "value": 30000},
        {"component_id": hra["id"], "calculation_type": "Percentage", "value": 40, "percentage_of": [basic["id"]]},
    ]})
    assert r.status_code == 200

    for day in ("2025-06-03", "2025-06-04", "2025-06-05"):
        r = client.post("/api/v1/attendance/mark", headers=hdr,
                        json={"employee_id": emp.id, "date": day, "status": "Absent"})
        assert r.status_code == 200

    r = client.post("/api/v1/payroll/generate", headers=hdr, json={"employee_id": emp.id, "month": 6, "year": 2025})
    assert r.status_code == 201
    slip = r.get_json()["data"]
    assert slip["gross_earnings"] == 37800.0
    assert slip["components"][:2] == [
        {"name": "Basic Salary", "category": "Earning", "amount": 27000.0},
        {"name": "HRA", "category": "Earning", "amount": 10800.0},
    ]

    r = client.get(f"/api/v1/payroll/payslips/{emp.id}?month=6&year=2025", headers=hdr)
    assert r.get_json()["data"] == slip

    r = client.get("/api/v1/payroll/payslips/my?month=6&year=2025",
                   headers=auth_header(emp.id, perms=["payroll.self"]))
    assert r.get_json()["data"]["id"] == slip["id"]

    r = client.post("/api/v1/payroll/generate/bulk", headers=hdr, json={"month": 6, "year": 2025})
    assert r.get_json()["data"]["generated"] == 1

    r = client.get("/api/v1/payroll/register?month=6&year=2025", headers=hdr)
    assert r.status_code == 200
    assert r.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert r.data[:2] == b"PK"


def test_leave_flow(client, make_employee, auth_header):
    emp = make_employee()
    hr = make_employee("HR")
    me = auth_header(emp.id, perms=["leave.self", "attendance.self"])
    admin = auth_header(hr.id, **ADMIN)

    r = client.post("/api/v1/leave/policies", headers=admin, json={
        "leave_type": "SL", "category": "Paid", "renewal_type": "Yearly", "total_days_per_year": 10})
    assert r.status_code == 201

    start = _next_monday(utc_today())
    r = client.get(f"/api/v1/leave/balances/my?year={start.year}", headers=me)
    assert [b["leave_type"] for b in r.get_json()["data"]] == ["SL"]

    r = client.post("/api/v1/leave/requests", headers=me, json={
        "leave_type": "SL", "from_date": start.isoformat(),
        "to_date": (start + timedelta(days=1)).isoformat(), "reason": "dentist"})
    assert r.status_code == 201
    lr = r.get_json()["data"]
    assert lr["number_of_days"] == 2.0

    r = client.post(f"/api/v1/leave/requests/{lr['id']}/approve", headers=me)
    assert r.status_code == 403

    r = client.post(f"/api/v1/leave/requests/{lr['id']}/approve", headers=admin, json={"remarks": "ok"})
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "Approved"

    r = client.post(f"/api/v1/leave/requests/{lr['id']}/reject", headers=admin)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "STATE_CONFLICT"

    r = client.get(f"/api/v1/leave/balances/{emp.id}?year={start.year}", headers=admin)
    assert r.get_json()["data"][0]["used"] == 2.0

    r = client.get("/api/v1/leave/requests/my", headers=me)
    assert r.get_json()["meta"]["total"] == 1


def test_attendance_self_service(client, make_employee, auth_header):
    emp = make_employee()
    me = auth_header(emp.id, perms=["attendance.self"])

    assert client.post("/api/v1/attendance/check-out", headers=me).status_code == 409
    assert client.post("/api/v1/attendance/check-in", headers=me).status_code == 201
    assert client.post("/api/v1/attendance/check-in", headers=me).status_code == 409
    assert client.post("/api/v1/attendance/check-out", headers=me).status_code == 200

    r = client.get("/api/v1/attendance/my", headers=me)
    data = r.get_json()["data"]
    assert len(data) == 1
    assert data[0]["status"] == "Present"


def test_task_endpoints(client, make_employee, auth_header):
    boss = make_employee()
    worker = make_employee()
    r = client.post("/api/v1/tasks", headers=auth_header(boss.id, perms=["tasks.manage"]),
                    json={"title": "Reconcile payslips"})
    tid = r.get_json()["data"]["id"]

    me = auth_header(worker.id, perms=["tasks.self"])
    assert [t["id"] for t in client.get("/api/v1/tasks/open", headers=me).get_json()["data"]] == [tid]
    assert client.post(f"/api/v1/tasks/{tid}/claim", headers=me, json={"estimate_minutes": 30}).status_code == 200
    assert client.post(f"/api/v1/tasks/{tid}/start", headers=me).status_code == 200
    r = client.post(f"/api/v1/tasks/{tid}/complete", headers=me)
    assert r.get_json()["data"]["status"] == "completed"
    assert r.get_json()["data"]["rating"] == 5


def test_db_url_normalised_for_psycopg():
    for url in ("postgres://u:p@h/db", "postgresql://u:p@h/db", "postgresql+psycopg2://u:p@h/db"):
        assert normalize_db_url(url) == "postgresql+psycopg://u:p@h/db"
    assert normalize_db_url("sqlite:///:memory:") == "sqlite:///:memory:"
    assert engine_options("sqlite:///:memory:") == {}
    assert engine_options("postgresql+psycopg://u:p@h/db")["pool_pre_ping"] is True
