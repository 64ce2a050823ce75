"""initial hr / payroll schema

Revision ID: 4f1a2b3c5d6e
Revises:
Create Date: 2025-06-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1a2b3c5d6e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = (
    ('attendance_status_enum', ('Present', 'Absent', 'On Leave', 'Holiday', 'Half Day')),
    ('leave_category_enum', ('Paid', 'Unpaid')),
    ('leave_request_category_enum', ('Paid', 'Unpaid')),
    ('leave_renewal_enum', ('Yearly', 'Monthly')),
    ('leave_status_enum', ('Pending', 'Approved', 'Rejected')),
    ('component_category_enum', ('Earning', 'Deduction')),
    ('calculation_type_enum', ('Fixed', 'Percentage')),
    ('component_default_calculation_enum', ('Fixed', 'Percentage')),
    ('payslip_status_enum', ('Draft', 'Generated', 'Paid')),
    ('task_status_enum', ('open', 'claimed', 'in_progress', 'paused', 'completed')),
)


def _enum(name):
    return sa.Enum(*dict(ENUMS)[name], name=name)


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('date_of_joining', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'leave_policies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('leave_type', sa.String(length=20), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('category', _enum('leave_category_enum'), nullable=False),
        sa.Column('renewal_type', _enum('leave_renewal_enum'), nullable=True),
        sa.Column('total_days_per_year', sa.Numeric(5, 2), nullable=True),
        sa.Column('monthly_day_limit', sa.Numeric(5, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type', sa.String(length=20), nullable=False),
        sa.Column('leave_category', _enum('leave_request_category_enum'), nullable=False),
        sa.Column('from_date', sa.Date(), nullable=False),
        sa.Column('to_date', sa.Date(), nullable=False),
        sa.Column('number_of_days', sa.Numeric(5, 2), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', _enum('leave_status_enum'), nullable=False),
        sa.Column('applied_at', sa.DateTime(), nullable=False),
        sa.Column('action_by', sa.Integer(), nullable=True),
        sa.Column('action_at', sa.DateTime(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
    )
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'])

    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type', sa.String(length=20), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total', sa.Numeric(5, 2), nullable=False),
        sa.Column('used', sa.Numeric(5, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'leave_type', 'year', name='uq_leave_balance_emp_type_year'),
        sa.CheckConstraint('used >= 0', name='ck_leave_balance_used_non_negative'),
        sa.CheckConstraint('total >= 0', name='ck_leave_balance_total_non_negative'),
        sa.CheckConstraint('used <= total', name='ck_leave_balance_used_within_total'),
    )
    op.create_index('ix_leave_balances_employee_id', 'leave_balances', ['employee_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('check_in', sa.DateTime(), nullable=True),
        sa.Column('check_out', sa.DateTime(), nullable=True),
        sa.Column('status', _enum('attendance_status_enum'), nullable=False),
        sa.Column('leave_request_id', sa.Integer(), sa.ForeignKey('leave_requests.id', ondelete='SET NULL'), nullable=True),
        sa.Column('remark', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'day', name='uq_attendance_employee_day'),
    )
    op.create_index('ix_attendance_records_employee_id', 'attendance_records', ['employee_id'])

    op.create_table(
        'salary_components',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False, unique=True),
        sa.Column('category', _enum('component_category_enum'), nullable=False),
        sa.Column('is_pro_rata', sa.Boolean(), nullable=False),
        sa.Column('is_taxable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('default_calculation_type', _enum('component_default_calculation_enum'), nullable=True),
        sa.Column('default_value', sa.Numeric(precision=14, scale=4), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'salary_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'salary_profile_components',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('profile_id', sa.Integer(), sa.ForeignKey('salary_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('component_id', sa.Integer(), sa.ForeignKey('salary_components.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('calculation_type', _enum('calculation_type_enum'), nullable=False),
        sa.Column('value', sa.Numeric(14, 4), nullable=False),
        sa.Column('percentage_of', sa.JSON(), nullable=False),
        sa.UniqueConstraint('profile_id', 'component_id', name='uq_profile_component'),
    )
    op.create_index('ix_salary_profile_components_profile_id', 'salary_profile_components', ['profile_id'])
    op.create_index('ix_salary_profile_components_component_id', 'salary_profile_components', ['component_id'])

    op.create_table(
        'payslips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month', sa.SmallInteger(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('components', sa.JSON(), nullable=False),
        sa.Column('gross_earnings', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_deductions', sa.Numeric(14, 2), nullable=False),
        sa.Column('net_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('attendance_summary', sa.JSON(), nullable=True),
        sa.Column('status', _enum('payslip_status_enum'), nullable=False),
        sa.Column('generated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'month', 'year', name='uq_payslip_employee_month_year'),
        sa.CheckConstraint('month BETWEEN 1 AND 12', name='ck_payslip_month_range'),
    )
    op.create_index('ix_payslips_employee_id', 'payslips', ['employee_id'])

    op.create_table(
        'employee_tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', _enum('task_status_enum'), nullable=False),
        sa.Column('estimate_minutes', sa.Integer(), nullable=True),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('paused_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('rating', sa.SmallInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_employee_tasks_assigned_to', 'employee_tasks', ['assigned_to'])


def downgrade() -> None:
    for table in (
        'employee_tasks', 'payslips', 'salary_profile_components', 'salary_profiles',
        'salary_components', 'attendance_records', 'leave_balances', 'leave_requests',
        'leave_policies', 'employees',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name, _ in ENUMS:
        # sqlite has no named enum types
        _enum(name).drop(bind, checkfirst=True)
