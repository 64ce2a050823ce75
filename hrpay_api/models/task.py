from hrpay_api.extensions import db
from hrpay_api.common.params import utcnow

TASK_STATUSES = ("open", "claimed", "in_progress", "paused", "completed")

class EmployeeTask(db.Model):
    __tablename__ = "employee_tasks"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    assigned_to = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True)
    status = db.Column(db.Enum(*TASK_STATUSES, name="task_status_enum"), nullable=False, default="open")
    estimate_minutes = db.Column(db.Integer)

    claimed_at = db.Column(db.DateTime)
    started_at = db.Column(db.DateTime)
    paused_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    rating = db.Column(db.SmallInteger)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
