from hrpay_api.extensions import db
from hrpay_api.common.params import utcnow

PRESENT = "Present"
ABSENT = "Absent"
ON_LEAVE = "On Leave"
HOLIDAY = "Holiday"
HALF_DAY = "Half Day"
ATTENDANCE_STATUSES = (PRESENT, ABSENT, ON_LEAVE, HOLIDAY, HALF_DAY)

class AttendanceRecord(db.Model):
    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    day = db.Column(db.Date, nullable=False)          # UTC calendar day
    check_in = db.Column(db.DateTime, nullable=True)   # naive UTC
    check_out = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.Enum(*ATTENDANCE_STATUSES, name="attendance_status_enum"), nullable=False, default=ABSENT)
    # set only while status == On Leave
    leave_request_id = db.Column(db.Integer, db.ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True)
    remark = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "day", name="uq_attendance_employee_day"),
    )

    employee = db.relationship("Employee", lazy="joined")
    leave_request = db.relationship("LeaveRequest", lazy="joined")
