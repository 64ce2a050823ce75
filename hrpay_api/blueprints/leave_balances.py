from flask import Blueprint, request

from hrpay_api.common.auth import current_employee_id, requires_perms
from hrpay_api.common.http import ok
from hrpay_api.common.paging import paginate
from hrpay_api.common.params import require_fields, to_int, utc_today
from hrpay_api.models.leave import LeaveBalance
from hrpay_api.services import leave_balance_service as svc

bp = Blueprint("leave_balances", __name__, url_prefix="/api/v1/leave/balances")


def _year(value=None) -> int:
    return to_int(value if value is not None else request.args.get("year"), "year") or utc_today().year


@bp.get("/my")
@requires_perms("leave.self")
def my_balances():
    year = _year()
    rows = svc.get_balances(current_employee_id(), year)
    return ok([svc.row(b) for b in rows], year=year)


@bp.get("")
@requires_perms("leave.balances.view")
def all_balances():
    year = _year()
    rows, meta = paginate(svc.list_all_balances(year), (LeaveBalance.id.asc(),))
    return ok([svc.row(b) for b in rows], year=year, **meta)


@bp.get("/<int:employee_id>")
@requires_perms("leave.balances.view")
def employee_balances(employee_id):
    year = _year()
    rows = svc.get_balances(employee_id, year)
    return ok([svc.row(b) for b in rows], year=year)


@bp.put("/<int:employee_id>")
@requires_perms("leave.balances.manage")
def update_balance(employee_id):
    d = request.get_json(silent=True) or {}
    require_fields(d, "leave_type", "used", "total")
    b = svc.update_balance(employee_id, d["leave_type"], d["used"], d["total"], _year(d.get("year")))
    return ok(svc.row(b))


@bp.post("/reset")
@requires_perms("leave.balances.manage")
def reset():
    d = request.get_json(silent=True) or {}
    return ok(svc.reset_for_year(_year(d.get("year"))))
