from io import BytesIO

from flask import Blueprint, request, send_file

from hrpay_api.common.auth import current_employee_id, requires_perms
from hrpay_api.common.errors import ValidationError
from hrpay_api.common.http import ok
from hrpay_api.common.paging import paginate
from hrpay_api.common.params import month_year, require_fields, to_int
from hrpay_api.models.payroll import Payslip
from hrpay_api.services import payroll_service as svc

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@bp.post("/generate")
@requires_perms("payroll.payslips.generate")
def generate():
    d = request.get_json(silent=True) or {}
    require_fields(d, "employee_id", "month", "year")
    emp_id = to_int(d["employee_id"], "employee_id")
    slip, _ = svc.generate_payslip(emp_id, d["month"], d["year"])
    return ok(svc.row(slip), status=201)


@bp.post("/generate/bulk")
@requires_perms("payroll.payslips.generate")
def generate_bulk():
    d = request.get_json(silent=True) or {}
    require_fields(d, "month", "year")
    return ok(svc.bulk_generate(d["month"], d["year"]))


@bp.get("/payslips")
@requires_perms("payroll.payslips.view")
def list_payslips():
    q = svc.list_payslips(request.args.get("month"), request.args.get("year"))
    rows, meta = paginate(q, (Payslip.employee_id.asc(),))
    return ok([svc.row(s) for s in rows], **meta)


@bp.get("/payslips/my")
@requires_perms("payroll.self")
def my_payslip():
    slip = svc.get_payslip(current_employee_id(), request.args.get("month"), request.args.get("year"))
    return ok(svc.row(slip))


@bp.get("/payslips/<int:employee_id>")
@requires_perms("payroll.payslips.view")
def get_payslip(employee_id):
    slip = svc.get_payslip(employee_id, request.args.get("month"), request.args.get("year"))
    return ok(svc.row(slip))


@bp.get("/register")
@requires_perms("payroll.payslips.view")
def register():
    if (request.args.get("format") or "xlsx").lower() != "xlsx":
        raise ValidationError("Only format=xlsx supported")
    month, year = month_year(request.args.get("month"), request.args.get("year"))
    data = svc.export_register(month, year)
    return send_file(BytesIO(data), mimetype=XLSX_MIME, as_attachment=True,
                     download_name=f"payroll_register_{year:04d}{month:02d}.xlsx")
