from datetime import date, datetime
from decimal import Decimal

import pytest

from hrpay_api.extensions import db
from hrpay_api.common.errors import ConflictError, NotFoundError, ValidationError
from hrpay_api.models.attendance import AttendanceRecord
from hrpay_api.models.leave import LeaveBalance, LeaveRequest
from hrpay_api.services import attendance_service, leave_balance_service, leave_policy_service
from hrpay_api.services import leave_request_service as svc

TODAY = date(2025, 6, 1)   # a Sunday; 2025-06-02 is a Monday


@pytest.fixture
def policies(app):
    leave_policy_service.create_policy({"leave_type": "CL", "category": "Paid", "renewal_type": "Yearly",
                                        "total_days_per_year": 12, "monthly_day_limit": 2})
    leave_policy_service.create_policy({"leave_type": "SL", "category": "Paid", "renewal_type": "Yearly",
                                        "total_days_per_year": 10})
    leave_policy_service.create_policy({"leave_type": "EL", "category": "Paid", "renewal_type": "Monthly",
                                        "monthly_day_limit": 1.5})
    leave_policy_service.create_policy({"leave_type": "LWP", "category": "Unpaid"})


@pytest.fixture
def emp(app, make_employee, policies):
    e = make_employee()
    leave_balance_service.get_balances(e.id, 2025)
    return e


def _apply(emp_id, leave_type, start, end, today=TODAY):
    return svc.create_request(
        emp_id, {"leave_type": leave_type, "from_date": start, "to_date": end, "reason": "personal"}, today=today)


def _used(emp_id, leave_type, year=2025):
    b = LeaveBalance.query.filter_by(employee_id=emp_id, leave_type=leave_type, year=year).one()
    db.session.refresh(b)
    return Decimal(b.used)


def test_working_days_skip_weekends():
    assert svc.working_days(date(2025, 6, 2), date(2025, 6, 9)) == 6
    assert svc.working_days(date(2025, 6, 7), date(2025, 6, 8)) == 0
    assert svc.working_days(date(2025, 6, 4), date(2025, 6, 4)) == 1


def test_create_persists_category_and_days(emp):
    lr = _apply(emp.id, "sl", "2025-06-02", "2025-06-09")
    assert lr.status == "Pending"
    assert lr.leave_type == "SL"
    assert lr.leave_category == "Paid"
    assert Decimal(lr.number_of_days) == 6


def test_create_validation_order(emp):
    with pytest.raises(NotFoundError):
        _apply(emp.id, "XYZ", "2025-06-02", "2025-06-03")
    with pytest.raises(ValidationError, match="past"):
        _apply(emp.id, "SL", "2025-05-30", "2025-06-03")
    with pytest.raises(ValidationError, match="before start"):
        _apply(emp.id, "SL", "2025-06-05", "2025-06-03")
    with pytest.raises(ValidationError, match="no working days"):
        _apply(emp.id, "SL", "2025-06-07", "2025-06-08")


def test_insufficient_balance_at_creation(emp):
    leave_balance_service.update_balance(emp.id, "SL", used=9, total=10, year=2025)
    with pytest.raises(ConflictError, match="Insufficient"):
        _apply(emp.id, "SL", "2025-06-02", "2025-06-03")


def test_missing_balance_row_is_a_conflict(app, make_employee, policies):
    e = make_employee()
    with pytest.raises(ConflictError):
        _apply(e.id, "SL", "2025-06-02", "2025-06-03")


def test_approve_deducts_and_marks_attendance(emp):
    lr = _apply(emp.id, "SL", "2025-06-02", "2025-06-09")
    svc.approve_request(lr.id, acted_by=emp.id, remarks="get well")

    assert _used(emp.id, "SL") == 6
    lr = db.session.get(LeaveRequest, lr.id)
    assert lr.status == "Approved"
    assert lr.action_at is not None
    recs = AttendanceRecord.query.filter_by(employee_id=emp.id).order_by(AttendanceRecord.day).all()
    assert [r.day.day for r in recs] == [2, 3, 4, 5, 6, 9]
    assert {r.status for r in recs} == {"On Leave"}
    assert {r.leave_request_id for r in recs} == {lr.id}


def test_approve_leaves_checked_in_days_alone(emp):
    attendance_service.record_check_in(emp.id, now=datetime(2025, 6, 3, 9, 0))
    lr = _apply(emp.id, "SL", "2025-06-02", "2025-06-04")
    svc.approve_request(lr.id)
    rec = AttendanceRecord.query.filter_by(employee_id=emp.id, day=date(2025, 6, 3)).one()
    assert rec.status == "Present"
    assert rec.leave_request_id is None


def test_balance_guard_at_approval_keeps_request_pending(emp):
    lr = _apply(emp.id, "SL", "2025-06-02", "2025-06-03")
    # balance consumed elsewhere after the request was filed
    leave_balance_service.update_balance(emp.id, "SL", used=9, total=10, year=2025)

    with pytest.raises(ConflictError):
        svc.approve_request(lr.id)

    assert db.session.get(LeaveRequest, lr.id).status == "Pending"
    assert _used(emp.id, "SL") == 9
    assert AttendanceRecord.query.count() == 0


def test_unpaid_and_monthly_approval_do_not_touch_balances(emp):
    lwp = _apply(emp.id, "LWP", "2025-06-02", "2025-06-06")
    el = _apply(emp.id, "EL", "2025-06-10", "2025-06-10")
    svc.approve_request(lwp.id)
    svc.approve_request(el.id)
    assert {b.leave_type: float(b.used) for b in leave_balance_service.get_balances(emp.id, 2025)} == {
        "CL": 0.0, "SL": 0.0,
    }


def test_yearly_monthly_cap(emp):
    with pytest.raises(ConflictError, match="Monthly limit"):
        _apply(emp.id, "CL", "2025-06-02", "2025-06-04")

    first = _apply(emp.id, "CL", "2025-06-02", "2025-06-03")
    svc.approve_request(first.id)
    with pytest.raises(ConflictError, match="Monthly limit"):
        _apply(emp.id, "CL", "2025-06-16", "2025-06-16")
    # next month starts fresh
    assert _apply(emp.id, "CL", "2025-07-01", "2025-07-02").status == "Pending"


def test_cap_rechecked_at_approval(emp):
    a = _apply(emp.id, "CL", "2025-06-02", "2025-06-03")
    b = _apply(emp.id, "CL", "2025-06-16", "2025-06-16")
    svc.approve_request(a.id)
    with pytest.raises(ConflictError):
        svc.approve_request(b.id)
    assert _used(emp.id, "CL") == 2


def test_paid_monthly_grant(emp):
    with pytest.raises(ConflictError):
        _apply(emp.id, "EL", "2025-06-02", "2025-06-03")
    lr = _apply(emp.id, "EL", "2025-06-02", "2025-06-02")
    svc.approve_request(lr.id)
    with pytest.raises(ConflictError):
        _apply(emp.id, "EL", "2025-06-04", "2025-06-04")


def test_requests_are_terminal(emp):
    lr = _apply(emp.id, "SL", "2025-06-02", "2025-06-02")
    svc.reject_request(lr.id, remarks="busy week")
    with pytest.raises(ConflictError):
        svc.approve_request(lr.id)
    with pytest.raises(ConflictError):
        svc.reject_request(lr.id)
    assert _used(emp.id, "SL") == 0


def test_list_requests_filters(emp):
    _apply(emp.id, "SL", "2025-06-02", "2025-06-02")
    lr = _apply(emp.id, "LWP", "2025-06-03", "2025-06-03")
    svc.approve_request(lr.id)
    assert svc.list_requests(status="Pending").count() == 1
    assert svc.list_requests(leave_type="lwp").one().id == lr.id
    assert svc.list_requests(employee_id=emp.id).count() == 2
