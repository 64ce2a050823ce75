from flask import Blueprint, request

from hrpay_api.common.auth import current_employee_id, requires_perms
from hrpay_api.common.http import ok
from hrpay_api.common.paging import paginate
from hrpay_api.common.params import require_fields, to_int
from hrpay_api.models.leave import LeaveRequest
from hrpay_api.services import leave_request_service as svc

bp = Blueprint("leave_requests", __name__, url_prefix="/api/v1/leave/requests")


# ---------- employee ----------
@bp.post("")
@requires_perms("leave.self")
def apply_leave():
    d = request.get_json(silent=True) or {}
    require_fields(d, "leave_type", "from_date", "to_date", "reason")
    lr = svc.create_request(current_employee_id(), d)
    return ok(svc.row(lr), status=201)


@bp.get("/my")
@requires_perms("leave.self")
def my_requests():
    q = svc.list_requests(status=request.args.get("status"), employee_id=current_employee_id())
    rows, meta = paginate(q, (LeaveRequest.applied_at.desc(), LeaveRequest.id.desc()))
    return ok([svc.row(r) for r in rows], **meta)


# ---------- HR / manager ----------
@bp.get("")
@requires_perms("leave.requests.view")
def list_requests():
    q = svc.list_requests(
        status=request.args.get("status"),
        employee_id=to_int(request.args.get("employee_id"), "employee_id"),
        leave_type=request.args.get("leave_type"),
    )
    rows, meta = paginate(q, (LeaveRequest.applied_at.desc(), LeaveRequest.id.desc()))
    return ok([svc.row(r) for r in rows], **meta)


@bp.get("/<int:rid>")
@requires_perms("leave.requests.view")
def get_request(rid):
    return ok(svc.row(svc.get_request(rid)))


@bp.post("/<int:rid>/approve")
@requires_perms("leave.requests.approve")
def approve(rid):
    d = request.get_json(silent=True) or {}
    lr = svc.approve_request(rid, acted_by=current_employee_id(), remarks=d.get("remarks"))
    return ok(svc.row(lr))


@bp.post("/<int:rid>/reject")
@requires_perms("leave.requests.approve")
def reject(rid):
    d = request.get_json(silent=True) or {}
    lr = svc.reject_request(rid, acted_by=current_employee_id(), remarks=d.get("remarks"))
    return ok(svc.row(lr))
