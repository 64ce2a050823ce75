# hrpay_api/models/payroll/__init__.py
from hrpay_api.extensions import db  # noqa

from .components import SalaryComponent, SalaryProfile, AssignedComponent
from .payslip import Payslip

__all__ = [
    "SalaryComponent", "SalaryProfile", "AssignedComponent",
    "Payslip",
]
