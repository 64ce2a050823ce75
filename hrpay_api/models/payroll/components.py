from hrpay_api.extensions import db
from hrpay_api.common.params import utcnow

EARNING = "Earning"
DEDUCTION = "Deduction"
LOSS_OF_PAY = "Loss of Pay"

FIXED = "Fixed"
PERCENTAGE = "Percentage"


class SalaryComponent(db.Model):
    __tablename__ = "salary_components"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)   # "Basic Salary", "HRA", "Provident Fund"
    category = db.Column(db.Enum(EARNING, DEDUCTION, name="component_category_enum"), nullable=False)
    # scale with payable days in the month
    is_pro_rata = db.Column(db.Boolean, nullable=False, default=False)
    is_taxable = db.Column(db.Boolean, nullable=False, default=True)
    description = db.Column(db.String(255))

    # rule a profile entry falls back to when it omits calculation_type / value
    default_calculation_type = db.Column(db.Enum(FIXED, PERCENTAGE, name="component_default_calculation_enum"))
    default_value = db.Column(db.Numeric(14, 4))

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)


class SalaryProfile(db.Model):
    __tablename__ = "salary_profiles"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), unique=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    employee = db.relationship("Employee", lazy="joined")
    components = db.relationship(
        "AssignedComponent",
        order_by="AssignedComponent.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AssignedComponent(db.Model):
    __tablename__ = "salary_profile_components"

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("salary_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    component_id = db.Column(db.Integer, db.ForeignKey("salary_components.id", ondelete="RESTRICT"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    calculation_type = db.Column(db.Enum(FIXED, PERCENTAGE, name="calculation_type_enum"), nullable=False)
    # amount when Fixed, percentage points when Percentage
    value = db.Column(db.Numeric(14, 4), nullable=False)
    # ordered SalaryComponent ids forming the base of a Percentage entry
    percentage_of = db.Column(db.JSON, nullable=False, default=list)

    component = db.relationship("SalaryComponent", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("profile_id", "component_id", name="uq_profile_component"),
    )
