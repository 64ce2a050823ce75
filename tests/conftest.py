import os

import pytest
from flask_jwt_extended import create_access_token

from hrpay_api import create_app
from hrpay_api.extensions import db
from hrpay_api.models.employee import Employee
from hrpay_api.models.payroll import SalaryComponent
from hrpay_api.services import salary_service


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def make_employee(app):
    seq = {"n": 0}

    def _make(name="Test Employee", status="active"):
        seq["n"] += 1
        n = seq["n"]
        emp = Employee(code=f"EMP{n:03d}", name=name, email=f"emp{n}@example.com", status=status)
        db.session.add(emp)
        db.session.commit()
        return emp
    return _make


@pytest.fixture(scope="function")
def auth_header(app):
    def _hdr(employee_id, perms=(), roles=()):
        token = create_access_token(
            identity=str(employee_id),
            additional_claims={"perms": list(perms), "roles": list(roles)},
        )
        return {"Authorization": f"Bearer {token}"}
    return _hdr


@pytest.fixture(scope="function")
def basic_hra(app):
    """Basic 30000 (pro-rata) and HRA = 40% of Basic (pro-rata) for an employee."""
    def _component(name):
        found = SalaryComponent.query.filter_by(name=name).first()
        return found or salary_service.create_component({"name": name, "category": "Earning", "is_pro_rata": True})

    def _assign(employee_id):
        basic = _component("Basic Salary")
        hra = _component("HRA")
        salary_service.save_profile(employee_id, [
            {"component_id": basic.id, "calculation_type": "Fixed", "value": "30000"},
            {"component_id": hra.id, "calculation_type": "Percentage", "value": "40",
             "percentage_of": [basic.id]},
        ])
        return basic, hra
    return _assign


