"""payroll settlement schema

Revision ID: a1f0c9e2b7d4
Revises:
Create Date: 2025-01-15 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1f0c9e2b7d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    "config_status_enum": ("draft", "approved", "rejected"),
    "payroll_run_status_enum": ("draft", "processing", "finalized"),
    "payroll_payment_status_enum": ("pending", "paid"),
    "payslip_payment_status_enum": ("pending", "paid"),
    "bank_status_enum": ("valid", "missing"),
    "bonus_status_enum": ("pending", "approved", "rejected"),
    "benefit_status_enum": ("pending", "approved", "rejected"),
}


def _enum(name):
    # created once up front; shared by several tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _approval_columns():
    return [
        sa.Column('status', _enum("config_status_enum"), nullable=False, server_default='draft'),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # ---- directory / workflow (read side) ----
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(32), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(80), nullable=False),
        sa.Column('last_name', sa.String(80), nullable=True),
        sa.Column('department', sa.String(120), nullable=True),
        sa.Column('position_name', sa.String(120), nullable=True),
        sa.Column('pay_grade', sa.String(80), nullable=True),
        sa.Column('doj', sa.Date(), nullable=True),
        sa.Column('dol', sa.Date(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'employee_bank_accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('bank_name', sa.String(80), nullable=False),
        sa.Column('account_number', sa.String(40), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_employee_bank_accounts_employee_id', 'employee_bank_accounts', ['employee_id'])
    op.create_index('ix_empbank_primary', 'employee_bank_accounts', ['employee_id', 'is_primary'])

    op.create_table(
        'termination_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('contract_id', sa.String(64), nullable=False),
        sa.Column('initiator', sa.String(20), nullable=False, server_default='hr'),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('termination_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_termination_requests_employee_id', 'termination_requests', ['employee_id'])

    # ---- compensation config ----
    op.create_table(
        'pay_grades',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('grade', sa.String(80), nullable=False, unique=True),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('gross_salary', sa.Numeric(14, 2), nullable=True),
        *_approval_columns(),
    )
    op.create_table(
        'allowances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        *_approval_columns(),
    )
    op.create_table(
        'signing_bonuses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('position_name', sa.String(120), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        *_approval_columns(),
    )
    op.create_table(
        'tax_rules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('rate', sa.Numeric(6, 2), nullable=False),
        *_approval_columns(),
    )
    op.create_table(
        'insurance_brackets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('min_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('max_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('employee_rate', sa.Numeric(6, 2), nullable=False),
        sa.Column('employer_rate', sa.Numeric(6, 2), nullable=False),
        *_approval_columns(),
    )
    op.create_index('ix_insurance_brackets_window', 'insurance_brackets', ['status', 'min_salary', 'max_salary'])
    op.create_table(
        'termination_benefits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('terms', sa.String(255), nullable=True),
        *_approval_columns(),
    )
    op.create_table(
        'employee_allowances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('allowance_id', sa.Integer(), sa.ForeignKey('allowances.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('employee_id', 'allowance_id', name='uq_emp_allowance'),
    )
    op.create_index('ix_employee_allowances_employee_id', 'employee_allowances', ['employee_id'])

    # ---- run ledger + settlements ----
    op.create_table(
        'payroll_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('run_id', sa.String(40), nullable=False, unique=True),
        sa.Column('period', sa.Date(), nullable=False, unique=True),
        sa.Column('entity', sa.String(120), nullable=True),
        sa.Column('status', _enum("payroll_run_status_enum"), nullable=False, server_default='draft'),
        sa.Column('payment_status', _enum("payroll_payment_status_enum"), nullable=False, server_default='pending'),
        sa.Column('employee_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('exception_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_net_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('specialist_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('finalized_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
    )

    money = dict(nullable=False, server_default='0')
    op.create_table(
        'employee_payroll_details',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('payroll_run_id', sa.Integer(), sa.ForeignKey('payroll_runs.id'), nullable=False),
        sa.Column('base_salary', sa.Numeric(14, 2), **money),
        sa.Column('allowances_total', sa.Numeric(14, 2), **money),
        sa.Column('bonus_total', sa.Numeric(14, 2), nullable=True),
        sa.Column('benefit_total', sa.Numeric(14, 2), nullable=True),
        sa.Column('gross_salary', sa.Numeric(14, 2), **money),
        sa.Column('tax_amount', sa.Numeric(14, 2), **money),
        sa.Column('insurance_amount', sa.Numeric(14, 2), **money),
        sa.Column('penalties_amount', sa.Numeric(14, 2), **money),
        sa.Column('deductions_total', sa.Numeric(14, 2), **money),
        sa.Column('net_pay', sa.Numeric(14, 2), **money),
        sa.Column('bank_status', _enum("bank_status_enum"), nullable=False),
        sa.Column('exceptions', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'payroll_run_id', name='uq_settlement_emp_run'),
    )
    op.create_index('ix_employee_payroll_details_employee_id', 'employee_payroll_details', ['employee_id'])
    op.create_index('ix_employee_payroll_details_payroll_run_id', 'employee_payroll_details', ['payroll_run_id'])

    op.create_table(
        'payslips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('payroll_run_id', sa.Integer(), sa.ForeignKey('payroll_runs.id'), nullable=False),
        sa.Column('earnings_details', sa.JSON(), nullable=False),
        sa.Column('deductions_details', sa.JSON(), nullable=False),
        sa.Column('total_gross_salary', sa.Numeric(14, 2), **money),
        sa.Column('total_deductions', sa.Numeric(14, 2), **money),
        sa.Column('net_pay', sa.Numeric(14, 2), **money),
        sa.Column('payment_status', _enum("payslip_payment_status_enum"), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'payroll_run_id', name='uq_payslip_emp_run'),
    )
    op.create_index('ix_payslips_employee_id', 'payslips', ['employee_id'])
    op.create_index('ix_payslips_payroll_run_id', 'payslips', ['payroll_run_id'])

    # ---- disbursements / penalties ----
    op.create_table(
        'employee_signing_bonuses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('signing_bonus_id', sa.Integer(), sa.ForeignKey('signing_bonuses.id'), nullable=False),
        sa.Column('given_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('status', _enum("bonus_status_enum"), nullable=False, server_default='pending'),
        sa.Column('payroll_run_id', sa.Integer(), sa.ForeignKey('payroll_runs.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'signing_bonus_id', name='uq_emp_signing_bonus'),
    )
    op.create_index('ix_employee_signing_bonuses_employee_id', 'employee_signing_bonuses', ['employee_id'])

    op.create_table(
        'employee_termination_benefits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('benefit_id', sa.Integer(), sa.ForeignKey('termination_benefits.id'), nullable=False),
        sa.Column('termination_request_id', sa.Integer(), sa.ForeignKey('termination_requests.id'), nullable=False),
        sa.Column('given_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('status', _enum("benefit_status_enum"), nullable=False, server_default='pending'),
        sa.Column('payroll_run_id', sa.Integer(), sa.ForeignKey('payroll_runs.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'benefit_id', name='uq_emp_termination_benefit'),
    )
    op.create_index('ix_employee_termination_benefits_employee_id', 'employee_termination_benefits', ['employee_id'])

    op.create_table(
        'employee_penalties',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False, unique=True),
        sa.Column('penalties', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        'employee_penalties', 'employee_termination_benefits', 'employee_signing_bonuses',
        'payslips', 'employee_payroll_details', 'payroll_runs',
        'employee_allowances', 'termination_benefits', 'insurance_brackets', 'tax_rules',
        'signing_bonuses', 'allowances', 'pay_grades',
        'termination_requests', 'employee_bank_accounts', 'employees',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUMS:
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
