from datetime import date, datetime, timedelta

import pytest

from hrpay_api.common.errors import ConflictError, NotFoundError, ValidationError
from hrpay_api.models.attendance import AttendanceRecord
from hrpay_api.services import attendance_service as svc

MORNING = datetime(2025, 6, 2, 9, 30)
EVENING = datetime(2025, 6, 2, 18, 0)


def test_check_in_then_out(make_employee):
    emp = make_employee()
    rec = svc.record_check_in(emp.id, now=MORNING)
    assert rec.day == date(2025, 6, 2)
    assert rec.status == "Present"

    rec = svc.record_check_out(emp.id, now=EVENING)
    assert rec.check_out == EVENING
    assert AttendanceRecord.query.count() == 1


def test_double_check_in_and_out_conflict(make_employee):
    emp = make_employee()
    svc.record_check_in(emp.id, now=MORNING)
    with pytest.raises(ConflictError):
        svc.record_check_in(emp.id, now=MORNING.replace(hour=10))
    svc.record_check_out(emp.id, now=EVENING)
    with pytest.raises(ConflictError):
        svc.record_check_out(emp.id, now=EVENING.replace(hour=19))


def test_check_out_requires_check_in(make_employee):
    emp = make_employee()
    with pytest.raises(ConflictError):
        svc.record_check_out(emp.id, now=EVENING)


def test_check_in_unknown_employee(app):
    with pytest.raises(NotFoundError):
        svc.record_check_in(999, now=MORNING)


def test_no_check_in_on_leave_day(make_employee):
    emp = make_employee()
    svc.mark_on_leave(emp.id, [date(2025, 6, 2)], leave_request_id=None)
    with pytest.raises(ConflictError, match="On Leave"):
        svc.record_check_in(emp.id, now=MORNING)


def test_update_record_rejects_inverted_times(make_employee):
    emp = make_employee()
    rec = svc.record_check_in(emp.id, now=MORNING)
    with pytest.raises(ValidationError):
        svc.update_record(rec.id, check_out=MORNING.replace(hour=8))
    with pytest.raises(NotFoundError):
        svc.update_record(rec.id + 100, status="Absent")


def test_update_record_clears_times_and_keeps_them_on_the_day(make_employee):
    emp = make_employee()
    svc.record_check_in(emp.id, now=MORNING)
    rec = svc.record_check_out(emp.id, now=EVENING)

    with pytest.raises(ValidationError):
        svc.update_record(rec.id, check_in=MORNING + timedelta(days=1))
    with pytest.raises(ValidationError):
        svc.update_record(rec.id, check_in=None, check_in_given=True)

    rec = svc.update_record(rec.id, check_out=None, check_out_given=True)
    assert rec.check_out is None
    assert rec.check_in == MORNING

    rec = svc.update_record(rec.id, check_in=None, check_in_given=True, status="Absent")
    assert rec.check_in is None
    assert rec.status == "Absent"


def test_update_record_status_clears_leave_link(make_employee):
    emp = make_employee()
    rec = svc.mark_day(emp.id, date(2025, 6, 3), "Absent")
    rec.status, rec.leave_request_id = "On Leave", 7
    rec = svc.update_record(rec.id, status="Half Day", remark="left early", remark_given=True)
    assert rec.leave_request_id is None
    assert rec.remark == "left early"

    rec = svc.update_record(rec.id, remark="", remark_given=True)
    assert rec.remark is None
    assert rec.status == "Half Day"


def test_mark_day_upserts_and_refuses_on_leave(make_employee):
    emp = make_employee()
    svc.mark_day(emp.id, date(2025, 6, 4), "Absent")
    svc.mark_day(emp.id, date(2025, 6, 4), "Holiday", remark="local festival")
    assert AttendanceRecord.query.filter_by(employee_id=emp.id).one().status == "Holiday"
    with pytest.raises(ValidationError):
        svc.mark_day(emp.id, date(2025, 6, 5), "On Leave")
    with pytest.raises(ValidationError):
        svc.mark_day(emp.id, date(2025, 6, 5), "Sleeping")


def test_list_records_filters(make_employee):
    a = make_employee()
    b = make_employee()
    svc.mark_day(a.id, date(2025, 6, 2), "Absent")
    svc.mark_day(a.id, date(2025, 6, 3), "Present")
    svc.mark_day(b.id, date(2025, 6, 3), "Absent")

    assert svc.list_records(employee_id=a.id).count() == 2
    assert svc.list_records(day=date(2025, 6, 3)).count() == 2
    assert svc.list_records(status="Absent").count() == 2
    assert svc.list_records(start=date(2025, 6, 3), end=date(2025, 6, 30)).count() == 2
