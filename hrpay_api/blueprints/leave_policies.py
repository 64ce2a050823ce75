from flask import Blueprint, request

from hrpay_api.common.auth import current_employee_id, requires_perms
from hrpay_api.common.http import ok
from hrpay_api.common.params import to_bool
from hrpay_api.services import leave_policy_service as svc

bp = Blueprint("leave_policies", __name__, url_prefix="/api/v1/leave/policies")


@bp.get("")
@requires_perms("leave.policies.view")
def list_policies():
    items = svc.list_policies(active_only=bool(to_bool(request.args.get("active"))))
    return ok([svc.row(p) for p in items], total=len(items))


@bp.get("/<int:pid>")
@requires_perms("leave.policies.view")
def get_policy(pid):
    return ok(svc.row(svc.get_policy(pid)))


@bp.post("")
@requires_perms("leave.policies.manage")
def create_policy():
    d = request.get_json(silent=True) or {}
    p = svc.create_policy(d, created_by=current_employee_id())
    return ok(svc.row(p), status=201)


@bp.put("/<int:pid>")
@requires_perms("leave.policies.manage")
def update_policy(pid):
    d = request.get_json(silent=True) or {}
    return ok(svc.row(svc.update_policy(pid, d)))


@bp.delete("/<int:pid>")
@requires_perms("leave.policies.manage")
def delete_policy(pid):
    svc.delete_policy(pid)
    return ok({"id": pid, "deleted": True})
