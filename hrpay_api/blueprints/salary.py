from flask import Blueprint, request

from hrpay_api.common.auth import requires_perms
from hrpay_api.common.http import ok
from hrpay_api.services import salary_service as svc

bp = Blueprint("salary", __name__, url_prefix="/api/v1/salary")


# ---------- components ----------
@bp.get("/components")
@requires_perms("payroll.components.view")
def list_components():
    items = svc.list_components()
    return ok([svc.component_row(c) for c in items], total=len(items))


@bp.get("/components/<int:cid>")
@requires_perms("payroll.components.view")
def get_component(cid):
    return ok(svc.component_row(svc.get_component(cid)))


@bp.post("/components")
@requires_perms("payroll.components.manage")
def create_component():
    d = request.get_json(silent=True) or {}
    return ok(svc.component_row(svc.create_component(d)), status=201)


@bp.put("/components/<int:cid>")
@requires_perms("payroll.components.manage")
def update_component(cid):
    d = request.get_json(silent=True) or {}
    return ok(svc.component_row(svc.update_component(cid, d)))


@bp.delete("/components/<int:cid>")
@requires_perms("payroll.components.manage")
def delete_component(cid):
    svc.delete_component(cid)
    return ok({"id": cid, "deleted": True})


# ---------- profiles ----------
@bp.get("/profiles/<int:employee_id>")
@requires_perms("payroll.profiles.view")
def get_profile(employee_id):
    p = svc.get_profile(employee_id)
    return ok(svc.profile_row(p) if p else None)


@bp.put("/profiles/<int:employee_id>")
@requires_perms("payroll.profiles.manage")
def save_profile(employee_id):
    d = request.get_json(silent=True) or {}
    p = svc.save_profile(employee_id, d.get("components"))
    return ok(svc.profile_row(p))
