# hrpay_api/services/leave_balance_service.py
from __future__ import annotations

from decimal import Decimal
from typing import List
import logging

from hrpay_api.extensions import db
from hrpay_api.common.errors import NotFoundError, ValidationError
from hrpay_api.common.params import to_decimal
from hrpay_api.models.employee import Employee
from hrpay_api.models.leave import LeaveBalance
from hrpay_api.services.leave_policy_service import PaidYearly, active_paid_yearly_policies, find_policy, rule_of

log = logging.getLogger(__name__)


def ensure_balances_for_employee_year(employee_id: int, year: int) -> int:
    """
    For every active Paid+Yearly policy the employee has no balance row for in
    ``year``, add one with total = the policy's annual total and used = 0.
    Existing rows are never touched. Caller commits.
    """
    existing = {
        b.leave_type for b in LeaveBalance.query.filter_by(employee_id=employee_id, year=year).all()
    }
    created = 0
    for policy in active_paid_yearly_policies():
        if policy.leave_type in existing:
            continue
        db.session.add(LeaveBalance(
            employee_id=employee_id,
            leave_type=policy.leave_type,
            year=year,
            total=policy.total_days_per_year,
            used=0,
        ))
        created += 1
    return created


def get_balances(employee_id: int, year: int) -> List[LeaveBalance]:
    """Self-healing read: fills in missing yearly balances, then returns all of them."""
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")

    created = ensure_balances_for_employee_year(employee_id, year)
    if created:
        db.session.commit()
        log.info("created %d missing leave balances for employee %s / %s", created, employee_id, year)

    return (LeaveBalance.query
            .filter_by(employee_id=employee_id, year=year)
            .order_by(LeaveBalance.leave_type.asc())
            .all())


def list_all_balances(year: int):
    return (LeaveBalance.query
            .filter_by(year=year)
            .order_by(LeaveBalance.employee_id.asc(), LeaveBalance.leave_type.asc()))


def update_balance(employee_id: int, leave_type: str, used, total, year: int) -> LeaveBalance:
    """Set used/total by hand; only Paid+Yearly leave types carry a balance."""
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")

    policy = find_policy(leave_type)
    if not policy or not isinstance(rule_of(policy), PaidYearly):
        raise ValidationError(
            f"Leave balances can only be set for Paid leave types that renew yearly. "
            f"'{leave_type}' is not one."
        )

    used = to_decimal(used, "used", minimum=Decimal("0"))
    total = to_decimal(total, "total", minimum=Decimal("0"))
    if used is None or total is None:
        raise ValidationError("used and total are required")
    if used > total:
        raise ValidationError("used cannot exceed total")

    bal = LeaveBalance.query.filter_by(employee_id=employee_id, leave_type=policy.leave_type, year=year).first()
    if not bal:
        bal = LeaveBalance(employee_id=employee_id, leave_type=policy.leave_type, year=year)
        db.session.add(bal)
    bal.used = used
    bal.total = total
    db.session.commit()
    return bal


def reset_for_year(year: int) -> dict:
    """
    Drop every balance row of ``year`` and regenerate one per
    (active employee x active Paid+Yearly policy). Safe to re-run.
    """
    policies = active_paid_yearly_policies()
    employees = Employee.query.filter_by(status="active").order_by(Employee.id.asc()).all()

    deleted = LeaveBalance.query.filter_by(year=year).delete(synchronize_session=False)
    rows = [
        LeaveBalance(employee_id=e.id, leave_type=p.leave_type, year=year, total=p.total_days_per_year, used=0)
        for e in employees
        for p in policies
    ]
    db.session.add_all(rows)
    db.session.commit()

    log.info("leave balances reset for %s: %d deleted, %d created", year, deleted, len(rows))
    return {
        "year": year,
        "employees_processed": len(employees),
        "balances_deleted": deleted,
        "balances_created": len(rows),
    }


def row(b: LeaveBalance) -> dict:
    return {
        "id": b.id,
        "employee_id": b.employee_id,
        "leave_type": b.leave_type,
        "year": b.year,
        "total": float(b.total),
        "used": float(b.used),
        "available": b.available,
    }
