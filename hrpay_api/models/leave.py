from hrpay_api.extensions import db
from hrpay_api.common.params import utcnow

PAID = "Paid"
UNPAID = "Unpaid"
YEARLY = "Yearly"
MONTHLY = "Monthly"

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"


class LeavePolicy(db.Model):
    __tablename__ = "leave_policies"

    id = db.Column(db.Integer, primary_key=True)
    leave_type = db.Column(db.String(20), unique=True, nullable=False)   # CL, SL, EL, LWP ...
    description = db.Column(db.String(255))
    category = db.Column(db.Enum(PAID, UNPAID, name="leave_category_enum"), nullable=False)
    renewal_type = db.Column(db.Enum(YEARLY, MONTHLY, name="leave_renewal_enum"), nullable=True)
    # Yearly: annual bucket.  Monthly: unused.
    total_days_per_year = db.Column(db.Numeric(5, 2), nullable=True)
    # Monthly: days granted each month.  Yearly: optional cap on days used per month.
    monthly_day_limit = db.Column(db.Numeric(5, 2), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)


class LeaveBalance(db.Model):
    __tablename__ = "leave_balances"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = db.Column(db.String(20), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    used = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_emp_type_year"),
        db.CheckConstraint("used >= 0", name="ck_leave_balance_used_non_negative"),
        db.CheckConstraint("total >= 0", name="ck_leave_balance_total_non_negative"),
        db.CheckConstraint("used <= total", name="ck_leave_balance_used_within_total"),
    )

    @property
    def available(self):
        return float(self.total) - float(self.used)


class LeaveRequest(db.Model):
    __tablename__ = "leave_requests"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = db.Column(db.String(20), nullable=False)
    # snapshot of the policy category at submission time
    leave_category = db.Column(db.Enum(PAID, UNPAID, name="leave_request_category_enum"), nullable=False)
    from_date = db.Column(db.Date, nullable=False)
    to_date = db.Column(db.Date, nullable=False)
    number_of_days = db.Column(db.Numeric(5, 2), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(PENDING, APPROVED, REJECTED, name="leave_status_enum"), nullable=False, default=PENDING)

    applied_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    action_by = db.Column(db.Integer, nullable=True)
    action_at = db.Column(db.DateTime)
    remarks = db.Column(db.Text)

    employee = db.relationship("Employee", lazy="joined")
