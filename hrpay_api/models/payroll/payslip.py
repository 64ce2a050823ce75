from hrpay_api.extensions import db
from hrpay_api.common.params import utcnow

class Payslip(db.Model):
    __tablename__ = "payslips"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    month = db.Column(db.SmallInteger, nullable=False)   # 1..12
    year = db.Column(db.Integer, nullable=False)

    # snapshot: [{"name", "category", "amount"}] exactly as resolved at generation time
    components = db.Column(db.JSON, nullable=False, default=list)
    gross_earnings = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    attendance_summary = db.Column(db.JSON)
    status = db.Column(db.Enum("Draft", "Generated", "Paid", name="payslip_status_enum"), nullable=False, default="Generated")

    generated_at = db.Column(db.DateTime, default=utcnow)
    created_at = db.Column(db.DateTime, default=utcnow)

    employee = db.relationship("Employee", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="uq_payslip_employee_month_year"),
        db.CheckConstraint("month BETWEEN 1 AND 12", name="ck_payslip_month_range"),
    )
