# hrpay_api/services/attendance_service.py
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional
import logging

from hrpay_api.extensions import db
from hrpay_api.common.errors import ConflictError, NotFoundError, ValidationError
from hrpay_api.common.params import utcnow
from hrpay_api.models.attendance import AttendanceRecord, ATTENDANCE_STATUSES, PRESENT, ON_LEAVE
from hrpay_api.models.employee import Employee

log = logging.getLogger(__name__)


def _day_of(ts: datetime) -> date:
    """Canonical UTC calendar day for a naive-UTC timestamp."""
    return ts.date()


def _require_employee(employee_id: int) -> Employee:
    emp = db.session.get(Employee, employee_id)
    if not emp:
        raise NotFoundError("Employee not found")
    return emp


def _record_for(employee_id: int, day: date) -> Optional[AttendanceRecord]:
    return AttendanceRecord.query.filter_by(employee_id=employee_id, day=day).first()


def record_check_in(employee_id: int, now: datetime | None = None) -> AttendanceRecord:
    now = now or utcnow()
    _require_employee(employee_id)
    today = _day_of(now)

    rec = _record_for(employee_id, today)
    if rec and rec.check_in:
        raise ConflictError("You have already checked in today.")
    if rec and rec.status == ON_LEAVE:
        raise ConflictError('Cannot check in. You are marked as "On Leave" for today.')

    if not rec:
        rec = AttendanceRecord(employee_id=employee_id, day=today)
        db.session.add(rec)
    rec.check_in = now
    rec.status = PRESENT
    rec.leave_request_id = None
    db.session.commit()
    return rec


def record_check_out(employee_id: int, now: datetime | None = None) -> AttendanceRecord:
    now = now or utcnow()
    rec = _record_for(employee_id, _day_of(now))
    if not rec or not rec.check_in:
        raise ConflictError("You must check in before you can check out.")
    if rec.check_out:
        raise ConflictError("You have already checked out today.")
    if now < rec.check_in:
        raise ValidationError("Check-out time cannot be before check-in time.")

    rec.check_out = now
    db.session.commit()
    return rec


def update_record(
    record_id: int,
    check_in: datetime | None = None,
    check_out: datetime | None = None,
    status: str | None = None,
    remark: str | None = None,
    remark_given: bool = False,
    check_in_given: bool = False,
    check_out_given: bool = False,
) -> AttendanceRecord:
    """
    HR correction. Only the supplied fields change. With ``*_given`` set, a
    ``None`` check-in, check-out or remark clears the stored value; corrected
    times must fall on the record's own (UTC) day.
    """
    rec = db.session.get(AttendanceRecord, record_id)
    if not rec:
        raise NotFoundError("Attendance record not found.")
    if status is not None and status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"status must be one of {list(ATTENDANCE_STATUSES)}")

    new_in = check_in if check_in_given or check_in is not None else rec.check_in
    new_out = check_out if check_out_given or check_out is not None else rec.check_out
    for label, ts in (("check_in", new_in), ("check_out", new_out)):
        if ts is not None and ts.date() != rec.day:
            raise ValidationError(f"{label} must fall on {rec.day.isoformat()}.")
    if new_out and not new_in:
        raise ValidationError("Check-out cannot be kept without a check-in.")
    if new_in and new_out and new_out < new_in:
        raise ValidationError("Check-out time cannot be before check-in time.")

    rec.check_in = new_in
    rec.check_out = new_out
    if status is not None:
        rec.status = status
        if status != ON_LEAVE:
            rec.leave_request_id = None
    if remark_given:
        rec.remark = remark or None
    db.session.commit()
    return rec


def mark_day(employee_id: int, day: date, status: str, remark: str | None = None) -> AttendanceRecord:
    """HR manual entry for one day (upsert)."""
    _require_employee(employee_id)
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"status must be one of {list(ATTENDANCE_STATUSES)}")
    if status == ON_LEAVE:
        raise ValidationError('"On Leave" days are recorded by approving a leave request.')

    rec = _record_for(employee_id, day)
    if not rec:
        rec = AttendanceRecord(employee_id=employee_id, day=day)
        db.session.add(rec)
    rec.status = status
    rec.leave_request_id = None
    if remark is not None:
        rec.remark = remark
    db.session.commit()
    return rec


def mark_on_leave(employee_id: int, days: Iterable[date], leave_request_id: int) -> int:
    """
    Link approved leave days to the ledger. Days the employee already checked
    in on are left as they are. Caller commits.
    """
    days = list(days)
    if not days:
        return 0
    existing = {
        r.day: r for r in AttendanceRecord.query.filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.day.in_(days),
        ).all()
    }
    marked = 0
    for d in days:
        rec = existing.get(d)
        if rec and rec.check_in:
            continue
        if not rec:
            rec = AttendanceRecord(employee_id=employee_id, day=d)
            db.session.add(rec)
        rec.status = ON_LEAVE
        rec.leave_request_id = leave_request_id
        marked += 1
    return marked


def list_records(
    employee_id: int | None = None,
    day: date | None = None,
    status: str | None = None,
    start: date | None = None,
    end: date | None = None,
):
    q = AttendanceRecord.query
    if employee_id:
        q = q.filter(AttendanceRecord.employee_id == employee_id)
    if day:
        q = q.filter(AttendanceRecord.day == day)
    if status:
        if status not in ATTENDANCE_STATUSES:
            raise ValidationError(f"status must be one of {list(ATTENDANCE_STATUSES)}")
        q = q.filter(AttendanceRecord.status == status)
    if start:
        q = q.filter(AttendanceRecord.day >= start)
    if end:
        q = q.filter(AttendanceRecord.day <= end)
    return q


def records_between(employee_id: int, start: date, end: date) -> List[AttendanceRecord]:
    return (AttendanceRecord.query
            .filter(AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.day >= start,
                    AttendanceRecord.day <= end)
            .order_by(AttendanceRecord.day.asc())
            .all())


def row(r: AttendanceRecord) -> dict:
    return {
        "id": r.id,
        "employee": r.employee.to_brief() if r.employee else {"id": r.employee_id},
        "date": r.day.isoformat(),
        "status": r.status,
        "check_in": r.check_in.isoformat() if r.check_in else None,
        "check_out": r.check_out.isoformat() if r.check_out else None,
        "leave_request": (
            {"id": r.leave_request.id, "leave_type": r.leave_request.leave_type,
             "leave_category": r.leave_request.leave_category}
            if r.leave_request else None
        ),
        "remark": r.remark,
    }
