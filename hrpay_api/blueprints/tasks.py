from flask import Blueprint, request

from hrpay_api.common.auth import current_employee_id, requires_perms
from hrpay_api.common.http import ok
from hrpay_api.common.paging import paginate
from hrpay_api.common.params import require_fields, to_int
from hrpay_api.models.task import EmployeeTask
from hrpay_api.services import task_service as svc

bp = Blueprint("tasks", __name__, url_prefix="/api/v1/tasks")


@bp.post("")
@requires_perms("tasks.manage")
def create_task():
    d = request.get_json(silent=True) or {}
    require_fields(d, "title")
    t = svc.create_task(d["title"], d.get("description"), created_by=current_employee_id())
    return ok(svc.row(t), status=201)


@bp.get("")
@requires_perms("tasks.view")
def list_tasks():
    q = svc.list_tasks(
        status=request.args.get("status"),
        assigned_to=to_int(request.args.get("assigned_to"), "assigned_to"),
    )
    rows, meta = paginate(q, (EmployeeTask.created_at.desc(), EmployeeTask.id.desc()))
    return ok([svc.row(t) for t in rows], **meta)


@bp.get("/open")
@requires_perms("tasks.self")
def open_tasks():
    return ok([svc.row(t) for t in svc.open_tasks()])


@bp.get("/my")
@requires_perms("tasks.self")
def my_tasks():
    q = svc.list_tasks(status=request.args.get("status"), assigned_to=current_employee_id())
    rows, meta = paginate(q, (EmployeeTask.created_at.desc(), EmployeeTask.id.desc()))
    return ok([svc.row(t) for t in rows], **meta)


@bp.post("/<int:tid>/claim")
@requires_perms("tasks.self")
def claim(tid):
    d = request.get_json(silent=True) or {}
    t = svc.claim(tid, current_employee_id(), d.get("estimate_minutes"))
    return ok(svc.row(t))


@bp.post("/<int:tid>/start")
@requires_perms("tasks.self")
def start(tid):
    return ok(svc.row(svc.start(tid, current_employee_id())))


@bp.post("/<int:tid>/pause")
@requires_perms("tasks.self")
def pause(tid):
    return ok(svc.row(svc.pause(tid, current_employee_id())))


@bp.post("/<int:tid>/complete")
@requires_perms("tasks.self")
def complete(tid):
    return ok(svc.row(svc.complete(tid, current_employee_id())))
