from flask import Blueprint, request

from hrpay_api.common.auth import current_employee_id, requires_perms
from hrpay_api.common.http import ok
from hrpay_api.common.paging import paginate
from hrpay_api.common.params import parse_date, parse_datetime, require_fields, to_int
from hrpay_api.models.attendance import AttendanceRecord
from hrpay_api.services import attendance_service as svc

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


# ---------- self service ----------
@bp.post("/check-in")
@requires_perms("attendance.self")
def check_in():
    rec = svc.record_check_in(current_employee_id())
    return ok(svc.row(rec), status=201)


@bp.post("/check-out")
@requires_perms("attendance.self")
def check_out():
    rec = svc.record_check_out(current_employee_id())
    return ok(svc.row(rec))


@bp.get("/my")
@requires_perms("attendance.self")
def my_history():
    q = svc.list_records(
        employee_id=current_employee_id(),
        start=parse_date(request.args.get("from"), "from"),
        end=parse_date(request.args.get("to"), "to"),
    )
    rows, meta = paginate(q, (AttendanceRecord.day.desc(),))
    return ok([svc.row(r) for r in rows], **meta)


# ---------- HR ----------
@bp.get("/report")
@requires_perms("attendance.report")
def report():
    q = svc.list_records(
        employee_id=to_int(request.args.get("employee_id"), "employee_id"),
        day=parse_date(request.args.get("date"), "date"),
        status=request.args.get("status") or None,
        start=parse_date(request.args.get("from"), "from"),
        end=parse_date(request.args.get("to"), "to"),
    )
    rows, meta = paginate(q, (AttendanceRecord.day.desc(), AttendanceRecord.employee_id.asc()))
    return ok([svc.row(r) for r in rows], **meta)


@bp.put("/<int:record_id>")
@requires_perms("attendance.manage")
def update_record(record_id):
    d = request.get_json(silent=True) or {}
    rec = svc.update_record(
        record_id,
        check_in=parse_datetime(d.get("check_in"), "check_in"),
        check_out=parse_datetime(d.get("check_out"), "check_out"),
        status=d.get("status"),
        remark=d.get("remark"),
        remark_given="remark" in d,
        check_in_given="check_in" in d,
        check_out_given="check_out" in d,
    )
    return ok(svc.row(rec))


@bp.post("/mark")
@requires_perms("attendance.manage")
def mark_day():
    d = request.get_json(silent=True) or {}
    require_fields(d, "employee_id", "date", "status")
    rec = svc.mark_day(
        to_int(d["employee_id"], "employee_id"),
        parse_date(d["date"], "date"),
        d["status"],
        remark=d.get("remark"),
    )
    return ok(svc.row(rec))
