# hrpay_api/services/leave_request_service.py
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from hrpay_api.extensions import db
from hrpay_api.common.errors import ConflictError, NotFoundError, ValidationError
from hrpay_api.common.params import parse_date, utc_today, utcnow
from hrpay_api.models.employee import Employee
from hrpay_api.models.leave import LeaveBalance, LeaveRequest, PAID, PENDING, APPROVED, REJECTED
from hrpay_api.services.attendance_service import mark_on_leave
from hrpay_api.services.leave_policy_service import PaidMonthly, PaidYearly, find_policy, rule_of
from hrpay_api.services.payroll_engine import month_bounds

log = logging.getLogger(__name__)


# ---------- working days ----------

def iter_working_days(start: date, end: date) -> Iterator[date]:
    """Monday-Friday dates of the inclusive span."""
    d = start
    while d <= end:
        if d.weekday() < 5:
            yield d
        d += timedelta(days=1)


def working_days(start: date, end: date) -> int:
    return sum(1 for _ in iter_working_days(start, end))


# ---------- helpers ----------

def _approved_days_in_month(employee_id: int, leave_type: str, on: date, exclude_id: int | None = None) -> Decimal:
    """Approved days of this type whose leave starts in the calendar month of ``on``."""
    start, end = month_bounds(on.year, on.month)
    q = (db.session.query(func.coalesce(func.sum(LeaveRequest.number_of_days), 0))
         .filter(LeaveRequest.employee_id == employee_id,
                 LeaveRequest.leave_type == leave_type,
                 LeaveRequest.status == APPROVED,
                 LeaveRequest.from_date >= start,
                 LeaveRequest.from_date <= end))
    if exclude_id:
        q = q.filter(LeaveRequest.id != exclude_id)
    return Decimal(str(q.scalar() or 0))


def _check_monthly_limit(employee_id: int, leave_type: str, on: date, days: Decimal, limit: Decimal,
                         exclude_id: int | None = None):
    taken = _approved_days_in_month(employee_id, leave_type, on, exclude_id)
    if taken + days > limit:
        raise ConflictError(
            f"Monthly limit exceeded for {leave_type}. Allowed: {limit} days, "
            f"already approved this month: {taken}, requested: {days}."
        )


def _balance(employee_id: int, leave_type: str, year: int) -> Optional[LeaveBalance]:
    return LeaveBalance.query.filter_by(employee_id=employee_id, leave_type=leave_type, year=year).first()


def get_request(request_id: int) -> LeaveRequest:
    lr = db.session.get(LeaveRequest, request_id)
    if not lr:
        raise NotFoundError("Leave request not found")
    return lr


def list_requests(status: str | None = None, employee_id: int | None = None, leave_type: str | None = None):
    q = LeaveRequest.query
    if status:
        q = q.filter(LeaveRequest.status == status)
    if employee_id:
        q = q.filter(LeaveRequest.employee_id == employee_id)
    if leave_type:
        q = q.filter(LeaveRequest.leave_type == leave_type.strip().upper())
    return q


# ---------- workflow ----------

def create_request(employee_id: int, d: dict, today: date | None = None) -> LeaveRequest:
    today = today or utc_today()
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")

    reason = (d.get("reason") or "").strip()
    if not reason:
        raise ValidationError("reason is required")
    sd = parse_date(d.get("from_date"), "from_date")
    ed = parse_date(d.get("to_date"), "to_date")
    if not (sd and ed):
        raise ValidationError("from_date and to_date are required")

    policy = find_policy(d.get("leave_type"))
    if not policy or not policy.is_active:
        raise NotFoundError(f"No leave policy found for type '{d.get('leave_type')}'")

    if sd < today:
        raise ValidationError("Cannot apply for leave in the past")
    if ed < sd:
        raise ValidationError("End date cannot be before start date")

    days = Decimal(working_days(sd, ed))
    if days <= 0:
        raise ValidationError("The selected dates contain no working days")

    rule = rule_of(policy)
    if isinstance(rule, PaidYearly):
        bal = _balance(employee_id, policy.leave_type, sd.year)
        if not bal:
            raise ConflictError("No leave balance found for this type")
        available = Decimal(bal.total) - Decimal(bal.used)
        if available < days:
            raise ConflictError(f"Insufficient leave balance. Available: {available} days")
        if rule.monthly_cap is not None:
            _check_monthly_limit(employee_id, policy.leave_type, sd, days, rule.monthly_cap)
    elif isinstance(rule, PaidMonthly):
        _check_monthly_limit(employee_id, policy.leave_type, sd, days, rule.monthly_grant)

    lr = LeaveRequest(
        employee_id=employee_id,
        leave_type=policy.leave_type,
        leave_category=policy.category,
        from_date=sd,
        to_date=ed,
        number_of_days=days,
        reason=reason,
        status=PENDING,
    )
    db.session.add(lr)
    db.session.commit()
    return lr


def _deduct_balance(bal: LeaveBalance, days: Decimal):
    """
    Atomic ``used = used + days``. Overflowing ``total`` rolls the whole
    transaction back, so the request stays Pending.
    """
    try:
        (LeaveBalance.query
         .filter(LeaveBalance.id == bal.id)
         .update({LeaveBalance.used: LeaveBalance.used + days}, synchronize_session=False))
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Insufficient leave balance to approve this request")

    db.session.refresh(bal)
    if Decimal(bal.used) > Decimal(bal.total):
        db.session.rollback()
        raise ConflictError("Insufficient leave balance to approve this request")


def approve_request(request_id: int, acted_by: int | None = None, remarks: str | None = None) -> LeaveRequest:
    lr = get_request(request_id)
    if lr.status != PENDING:
        raise ConflictError("Leave request has already been processed")

    days = Decimal(lr.number_of_days)
    if lr.leave_category == PAID:
        policy = find_policy(lr.leave_type)
        if not policy:
            raise ValidationError("Leave policy not found")
        rule = rule_of(policy)
        if isinstance(rule, PaidYearly):
            if rule.monthly_cap is not None:
                _check_monthly_limit(lr.employee_id, lr.leave_type, lr.from_date, days, rule.monthly_cap, lr.id)
            bal = _balance(lr.employee_id, lr.leave_type, lr.from_date.year)
            if not bal:
                raise ConflictError("No leave balance found for this type")
            _deduct_balance(bal, days)
        elif isinstance(rule, PaidMonthly):
            _check_monthly_limit(lr.employee_id, lr.leave_type, lr.from_date, days, rule.monthly_grant, lr.id)

    lr.status = APPROVED
    lr.action_by = acted_by
    lr.action_at = utcnow()
    lr.remarks = remarks
    marked = mark_on_leave(lr.employee_id, iter_working_days(lr.from_date, lr.to_date), lr.id)
    db.session.commit()

    log.info("leave request %s approved (%s %s days, %d attendance days marked)",
             lr.id, lr.leave_type, days, marked)
    return lr


def reject_request(request_id: int, acted_by: int | None = None, remarks: str | None = None) -> LeaveRequest:
    lr = get_request(request_id)
    if lr.status != PENDING:
        raise ConflictError("Leave request has already been processed")

    lr.status = REJECTED
    lr.action_by = acted_by
    lr.action_at = utcnow()
    lr.remarks = remarks
    db.session.commit()
    return lr


def row(r: LeaveRequest) -> dict:
    return {
        "id": r.id,
        "employee": r.employee.to_brief() if r.employee else {"id": r.employee_id},
        "leave_type": r.leave_type,
        "leave_category": r.leave_category,
        "from_date": r.from_date.isoformat(),
        "to_date": r.to_date.isoformat(),
        "number_of_days": float(r.number_of_days),
        "reason": r.reason,
        "status": r.status,
        "applied_at": r.applied_at.isoformat() if r.applied_at else None,
        "action_by": r.action_by,
        "action_at": r.action_at.isoformat() if r.action_at else None,
        "remarks": r.remarks,
    }
