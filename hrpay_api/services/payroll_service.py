# hrpay_api/services/payroll_service.py
from __future__ import annotations

from decimal import Decimal
from io import BytesIO
from typing import List, Tuple
import logging

from openpyxl import Workbook
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from hrpay_api.extensions import db
from hrpay_api.common.errors import APIError, ComputationError, NotFoundError
from hrpay_api.common.params import month_year, utcnow
from hrpay_api.models.employee import Employee
from hrpay_api.models.payroll import Payslip, SalaryProfile
from hrpay_api.services.attendance_service import records_between
from hrpay_api.services.payroll_engine import (
    AttendanceDay, ComponentRule, PayslipResult, compute_payslip, month_bounds,
)

log = logging.getLogger(__name__)


# ---------- hydration ----------

def rules_for(employee_id: int) -> List[ComponentRule]:
    profile = SalaryProfile.query.filter_by(employee_id=employee_id).first()
    if not profile:
        raise ComputationError("Salary profile not found for this employee")
    if not profile.components:
        raise ComputationError("Salary profile has no components")
    return [
        ComponentRule(
            component_id=a.component_id,
            name=a.component.name,
            category=a.component.category,
            is_pro_rata=bool(a.component.is_pro_rata),
            calculation_type=a.calculation_type,
            value=Decimal(a.value),
            percentage_of=tuple(a.percentage_of or ()),
        )
        for a in profile.components
    ]


def attendance_for(employee_id: int, year: int, month: int) -> List[AttendanceDay]:
    start, end = month_bounds(year, month)
    return [
        AttendanceDay(
            day=r.day,
            status=r.status,
            leave_category=r.leave_request.leave_category if r.leave_request else None,
        )
        for r in records_between(employee_id, start, end)
    ]


# ---------- generation ----------

_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}
_UPSERT_KEY = ("employee_id", "month", "year")


def _persist(employee_id: int, result: PayslipResult) -> Payslip:
    """Single-statement upsert on (employee, month, year); regeneration overwrites."""
    now = utcnow()
    values = {
        "employee_id": employee_id,
        "month": result.month,
        "year": result.year,
        "components": result.snapshot(),
        "gross_earnings": result.gross_earnings,
        "total_deductions": result.total_deductions,
        "net_salary": result.net_salary,
        "attendance_summary": result.attendance.to_dict(),
        "status": "Generated",
        "generated_at": now,
    }
    insert = _INSERTS[db.engine.dialect.name]
    stmt = insert(Payslip.__table__).values(created_at=now, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(_UPSERT_KEY),
        set_={k: stmt.excluded[k] for k in values if k not in _UPSERT_KEY},
    )
    db.session.execute(stmt)
    return (Payslip.query
            .filter_by(employee_id=employee_id, month=result.month, year=result.year)
            .populate_existing()
            .one())


def _generate(employee_id: int, month: int, year: int) -> Tuple[Payslip, PayslipResult]:
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")
    rules = rules_for(employee_id)
    result = compute_payslip(rules, attendance_for(employee_id, year, month), year, month)
    return _persist(employee_id, result), result


def generate_payslip(employee_id: int, month, year) -> Tuple[Payslip, PayslipResult]:
    """Compute and upsert one payslip. Regenerating overwrites the stored one."""
    month, year = month_year(month, year)
    slip, result = _generate(employee_id, month, year)
    db.session.commit()
    log.info("payslip generated for employee %s %04d-%02d: gross=%s deductions=%s net=%s",
             employee_id, year, month, result.gross_earnings, result.total_deductions, result.net_salary)
    return slip, result


def bulk_generate(month, year) -> dict:
    """
    Generate for every active employee in turn. An employee whose payslip
    cannot be computed or stored is rolled back, reported in ``errors``, and
    the batch carries on.
    """
    month, year = month_year(month, year)
    employees = Employee.query.filter_by(status="active").order_by(Employee.id.asc()).all()

    generated, errors = [], []
    for emp in employees:
        try:
            slip, _ = _generate(emp.id, month, year)
            db.session.commit()
            generated.append(slip.id)
        except APIError as e:
            db.session.rollback()
            log.warning("payslip for employee %s %04d-%02d skipped: %s", emp.id, year, month, e.message)
            errors.append({"employee_id": emp.id, "code": e.code, "error": e.message})
        except SQLAlchemyError as e:
            db.session.rollback()
            log.warning("payslip for employee %s %04d-%02d failed on the database: %s", emp.id, year, month, e)
            errors.append({"employee_id": emp.id, "code": "DATABASE_ERROR", "error": "Database error while generating payslip"})

    log.info("bulk payroll %04d-%02d: %d generated, %d failed", year, month, len(generated), len(errors))
    return {
        "month": month,
        "year": year,
        "employees_processed": len(employees),
        "generated": len(generated),
        "payslip_ids": generated,
        "errors": errors,
    }


# ---------- reads ----------

def get_payslip(employee_id: int, month, year) -> Payslip:
    month, year = month_year(month, year)
    slip = Payslip.query.filter_by(employee_id=employee_id, month=month, year=year).first()
    if not slip:
        raise NotFoundError("Payslip not found for this period")
    return slip


def list_payslips(month, year):
    month, year = month_year(month, year)
    return (Payslip.query
            .filter_by(month=month, year=year)
            .order_by(Payslip.employee_id.asc()))


REGISTER_HEADERS = [
    "SR.NO", "EMP CODE", "NAME", "DAYS", "PAYABLE DAYS", "LOP DAYS",
    "GROSS EARNINGS", "TOTAL DEDUCTIONS", "NET SALARY", "STATUS",
]


def export_register(month, year) -> bytes:
    """Payroll register for a period: summary sheet plus one sheet of line items."""
    month, year = month_year(month, year)
    slips = list_payslips(month, year).all()

    wb = Workbook()
    ws = wb.active
    ws.title = "REGISTER"
    ws.append(REGISTER_HEADERS)

    lines = wb.create_sheet("COMPONENTS")
    lines.append(["EMP CODE", "NAME", "COMPONENT", "CATEGORY", "AMOUNT"])

    totals = [Decimal("0.00")] * 3
    for i, s in enumerate(slips, start=1):
        att = s.attendance_summary or {}
        emp = s.employee
        code = emp.code if emp else None
        name = emp.name if emp else None
        ws.append([
            i, code, name,
            att.get("total_days"), att.get("payable_days"), att.get("lop_days"),
            float(s.gross_earnings), float(s.total_deductions), float(s.net_salary), s.status,
        ])
        totals = [totals[0] + s.gross_earnings, totals[1] + s.total_deductions, totals[2] + s.net_salary]
        for c in s.components or []:
            lines.append([code, name, c.get("name"), c.get("category"), c.get("amount")])

    ws.append([None, None, "TOTAL", None, None, None] + [float(t) for t in totals] + [None])

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def row(s: Payslip) -> dict:
    return {
        "id": s.id,
        "employee": s.employee.to_brief() if s.employee else {"id": s.employee_id},
        "month": s.month,
        "year": s.year,
        "components": s.components or [],
        "gross_earnings": float(s.gross_earnings),
        "total_deductions": float(s.total_deductions),
        "net_salary": float(s.net_salary),
        "attendance_summary": s.attendance_summary,
        "status": s.status,
        "generated_at": s.generated_at.isoformat() if s.generated_at else None,
    }
