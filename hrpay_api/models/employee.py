from hrpay_api.extensions import db
from hrpay_api.common.params import utcnow

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    code  = db.Column(db.String(32), unique=True, nullable=False)
    name  = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role  = db.Column(db.String(20), default="employee", nullable=False)   # hr/manager/employee
    status = db.Column(db.String(16), default="active", nullable=False)   # active/inactive
    date_of_joining = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_brief(self):
        return {"id": self.id, "code": self.code, "name": self.name}
