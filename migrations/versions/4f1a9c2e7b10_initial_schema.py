"""initial schema: registry, daily reports, settlements, advances, audit

Revision ID: 4f1a9c2e7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, nullable=True):
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, server_default="0")


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('position', sa.String(length=60), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
    )
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=120), nullable=False, unique=True),
        sa.Column('name', sa.String(length=150), nullable=True),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=True, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('support_rate', sa.Numeric(12, 2), nullable=True),
        sa.Column('support_model', sa.Enum('man_day', 'fixed', name='team_support_model_enum'),
                  nullable=False, server_default='man_day'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'sites',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('status', sa.Enum('active', 'paused', 'closed', name='site_status_enum'),
                  nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='SET NULL'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('name', sa.String(length=80), nullable=False),
        sa.Column('role', sa.String(length=40), nullable=False, server_default='일반공'),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('salary_model', sa.Enum('daily', 'weekly', 'monthly', 'support', 'service', name='salary_model_enum'),
                  nullable=False, server_default='daily'),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_worker_team_id', 'workers', ['team_id'])

    op.create_table(
        'daily_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('site_id', sa.Integer(), sa.ForeignKey('sites.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('site_name', sa.String(length=160), nullable=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('workers', sa.JSON(), nullable=False),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_daily_reports_team_date', 'daily_reports', ['team_id', 'date'])
    op.create_index('ix_daily_reports_date', 'daily_reports', ['date'])

    op.create_table(
        'settlements',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('worker_id', sa.Integer(), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('worker_name', sa.String(length=80), nullable=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='SET NULL'), nullable=True),
        sa.Column('role', sa.String(length=40), nullable=True),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('labor_site', sa.String(length=160), nullable=True),
        sa.Column('reported_site', sa.String(length=160), nullable=True),
        sa.Column('days_worked', sa.Numeric(8, 2), nullable=True, server_default='0'),
        sa.Column('reported_days', sa.Numeric(8, 2), nullable=True, server_default='0'),
        sa.Column('remaining_days', sa.Numeric(8, 2), nullable=True, server_default='0'),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=True, server_default='0'),
        _money('gross_pay'),
        _money('reported_gross_pay'),
        sa.Column('tax_rate', sa.Numeric(6, 4), nullable=True, server_default='0.033'),
        _money('tax_amount'),
        _money('national_pension'),
        _money('health_insurance'),
        _money('care_insurance'),
        _money('employment_insurance'),
        _money('advance_payment'),
        _money('accommodation_fee'),
        _money('food_expense'),
        _money('other_deduction'),
        _money('net_pay'),
        sa.Column('status', sa.Enum('pending', 'completed', 'paid', name='settlement_status_enum'),
                  nullable=False, server_default='pending'),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_settlements_worker_id', 'settlements', ['worker_id'])
    op.create_index('ix_settlements_team_id', 'settlements', ['team_id'])
    op.create_index('ix_settlements_team_month', 'settlements', ['team_id', 'month'])

    op.create_table(
        'deduction_items',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('label', sa.String(length=60), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'advance_payments',
        sa.Column('id', sa.String(length=96), primary_key=True),
        sa.Column('worker_id', sa.Integer(), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('worker_name', sa.String(length=80), nullable=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='SET NULL'), nullable=True),
        sa.Column('team_name', sa.String(length=120), nullable=True),
        sa.Column('year_month', sa.String(length=7), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        _money('prev_month_carryover', nullable=False),
        _money('accommodation', nullable=False),
        _money('private_room', nullable=False),
        _money('gloves', nullable=False),
        _money('deposit', nullable=False),
        _money('fines', nullable=False),
        _money('electricity', nullable=False),
        _money('gas', nullable=False),
        _money('internet', nullable=False),
        _money('water', nullable=False),
        _money('total_deduction', nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_advance_payments_worker_id', 'advance_payments', ['worker_id'])
    op.create_index('ix_advance_team_month', 'advance_payments', ['team_id', 'year_month'])

    op.create_table(
        'payroll_config',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tax_rate', sa.Numeric(6, 4), nullable=False, server_default='0.033'),
        sa.Column('insurance_config', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('action', sa.String(length=40), nullable=False),
        sa.Column('category', sa.String(length=40), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('actor_email', sa.String(length=255), nullable=True),
        sa.Column('actor_name', sa.String(length=255), nullable=True),
        sa.Column('target_id', sa.String(length=120), nullable=True),
        sa.Column('target_name', sa.String(length=255), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])
    op.create_index('ix_audit_category_ts', 'audit_logs', ['category', 'timestamp'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('payroll_config')
    op.drop_table('advance_payments')
    op.drop_table('deduction_items')
    op.drop_table('settlements')
    op.drop_table('daily_reports')
    op.drop_table('workers')
    op.drop_table('sites')
    op.drop_table('teams')
    op.drop_table('companies')
    op.drop_table('role_permissions')
    op.drop_table('user_roles')
    op.drop_table('permissions')
    op.drop_table('roles')
    op.drop_table('users')
    for enum_name in ('settlement_status_enum', 'salary_model_enum', 'site_status_enum', 'team_support_model_enum'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
