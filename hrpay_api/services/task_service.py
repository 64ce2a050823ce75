# hrpay_api/services/task_service.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from hrpay_api.extensions import db
from hrpay_api.common.errors import ConflictError, NotFoundError, ValidationError
from hrpay_api.common.params import iso, to_int, utcnow
from hrpay_api.models.employee import Employee
from hrpay_api.models.task import EmployeeTask

DEFAULT_RATING = 3


def rating_for(estimate_minutes: int | None, started_at: datetime | None, completed_at: datetime | None) -> int:
    """Score 1-5 from actual minutes against the estimate; faster is better."""
    if not estimate_minutes or not started_at or not completed_at:
        return DEFAULT_RATING
    actual = Decimal((completed_at - started_at).total_seconds()) / 60
    percent = actual / Decimal(estimate_minutes) * 100
    if percent <= 75:
        return 5
    if percent <= 100:
        return 4
    if percent <= 130:
        return 3
    if percent < 150:
        return 2
    return 1


def get_task(task_id: int) -> EmployeeTask:
    t = db.session.get(EmployeeTask, task_id)
    if not t:
        raise NotFoundError("Task not found")
    return t


def _own_task(task_id: int, employee_id: int) -> EmployeeTask:
    t = EmployeeTask.query.filter_by(id=task_id, assigned_to=employee_id).first()
    if not t:
        raise NotFoundError("Task not found")
    if t.status == "completed":
        raise ConflictError("Task is already completed")
    return t


def create_task(title, description=None, created_by: int | None = None) -> EmployeeTask:
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required")
    t = EmployeeTask(title=title, description=description, created_by=created_by, status="open")
    db.session.add(t)
    db.session.commit()
    return t


def list_tasks(status: str | None = None, assigned_to: int | None = None):
    q = EmployeeTask.query
    if status:
        q = q.filter(EmployeeTask.status == status)
    if assigned_to:
        q = q.filter(EmployeeTask.assigned_to == assigned_to)
    return q


def open_tasks():
    return (EmployeeTask.query
            .filter(EmployeeTask.status == "open", EmployeeTask.assigned_to.is_(None))
            .order_by(EmployeeTask.created_at.asc(), EmployeeTask.id.asc())
            .all())


def claim(task_id: int, employee_id: int, estimate_minutes=None) -> EmployeeTask:
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")
    estimate = to_int(estimate_minutes, "estimate_minutes")
    if estimate is not None and estimate <= 0:
        raise ValidationError("estimate_minutes must be greater than 0")

    t = EmployeeTask.query.filter_by(id=task_id, status="open", assigned_to=None).first()
    if not t:
        raise NotFoundError("Task not available for claim")
    t.assigned_to = employee_id
    t.status = "claimed"
    t.estimate_minutes = estimate
    t.claimed_at = utcnow()
    db.session.commit()
    return t


def start(task_id: int, employee_id: int, now: datetime | None = None) -> EmployeeTask:
    t = _own_task(task_id, employee_id)
    if t.status == "in_progress":
        raise ConflictError("Task is already in progress")
    t.status = "in_progress"
    # resuming after a pause keeps the original start
    if t.started_at is None:
        t.started_at = now or utcnow()
    t.paused_at = None
    db.session.commit()
    return t


def pause(task_id: int, employee_id: int, now: datetime | None = None) -> EmployeeTask:
    t = _own_task(task_id, employee_id)
    if t.status != "in_progress":
        raise ConflictError("Only a task in progress can be paused")
    t.status = "paused"
    t.paused_at = now or utcnow()
    db.session.commit()
    return t


def complete(task_id: int, employee_id: int, now: datetime | None = None) -> EmployeeTask:
    t = _own_task(task_id, employee_id)
    t.status = "completed"
    t.completed_at = now or utcnow()
    t.rating = rating_for(t.estimate_minutes, t.started_at, t.completed_at)
    db.session.commit()
    return t


def row(t: EmployeeTask) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "description": t.description,
        "created_by": t.created_by,
        "assigned_to": t.assigned_to,
        "status": t.status,
        "estimate_minutes": t.estimate_minutes,
        "claimed_at": iso(t.claimed_at),
        "started_at": iso(t.started_at),
        "paused_at": iso(t.paused_at),
        "completed_at": iso(t.completed_at),
        "rating": t.rating,
    }
