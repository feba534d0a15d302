"""Initial attendance, cooldown and gate pass tables

Revision ID: 001_initial_attendance
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_attendance'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy Enum columns store member names
record_status = sa.Enum('PENDING', 'FIRST_SESSION', 'ON_BREAK', 'SECOND_SESSION', 'COMPLETED', name='recordstatus')
pass_validity = sa.Enum('SINGLE', 'DAY', 'WEEK', 'MONTH', name='passvalidity')
pass_type = sa.Enum('ENTRY', 'EXIT', 'BOTH', name='passtype')
pass_status = sa.Enum('ACTIVE', 'USED', 'EXPIRED', 'REVOKED', name='passstatus')


def _timestamp(name: str) -> sa.Column:
    # CURRENT_TIMESTAMP works on both SQLite and Postgres
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False)


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('emp_code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('mobile_number', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_employees_id'), 'employees', ['id'], unique=False)
    op.create_index(op.f('ix_employees_emp_code'), 'employees', ['emp_code'], unique=True)

    op.create_table(
        'rosters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('grace_period_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('break_duration_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('early_departure_threshold_minutes', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_rosters_id'), 'rosters', ['id'], unique=False)
    op.create_index(op.f('ix_rosters_employee_id'), 'rosters', ['employee_id'], unique=True)

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('first_check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('second_check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('second_check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', record_status, nullable=False),
        sa.Column('minutes_late', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('break_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('total_worked_minutes', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'work_date', name='uq_attendance_records_employee_work_date'),
    )
    op.create_index(op.f('ix_attendance_records_id'), 'attendance_records', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_records_employee_id'), 'attendance_records', ['employee_id'], unique=False)
    op.create_index(op.f('ix_attendance_records_work_date'), 'attendance_records', ['work_date'], unique=False)

    op.create_table(
        'cooldown_states',
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('session_type', sa.String(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('employee_id'),
    )

    op.create_table(
        'gate_passes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('pass_code', sa.String(), nullable=False),
        sa.Column('normalized_code', sa.String(), nullable=False),
        sa.Column('code_suffix', sa.String(), nullable=False),
        sa.Column('validity', pass_validity, nullable=False),
        sa.Column('type', pass_type, nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', pass_status, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('exit_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('return_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('use_count', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pass_code'),
    )
    op.create_index(op.f('ix_gate_passes_id'), 'gate_passes', ['id'], unique=False)
    op.create_index(op.f('ix_gate_passes_employee_id'), 'gate_passes', ['employee_id'], unique=False)
    op.create_index(op.f('ix_gate_passes_normalized_code'), 'gate_passes', ['normalized_code'], unique=False)
    op.create_index(op.f('ix_gate_passes_code_suffix'), 'gate_passes', ['code_suffix'], unique=False)
    op.create_index(op.f('ix_gate_passes_status'), 'gate_passes', ['status'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_audit_logs_id'), table_name='audit_logs')
    op.drop_table('audit_logs')
    for index in ('status', 'code_suffix', 'normalized_code', 'employee_id', 'id'):
        op.drop_index(op.f(f'ix_gate_passes_{index}'), table_name='gate_passes')
    op.drop_table('gate_passes')
    op.drop_table('cooldown_states')
    for index in ('work_date', 'employee_id', 'id'):
        op.drop_index(op.f(f'ix_attendance_records_{index}'), table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index(op.f('ix_rosters_employee_id'), table_name='rosters')
    op.drop_index(op.f('ix_rosters_id'), table_name='rosters')
    op.drop_table('rosters')
    op.drop_index(op.f('ix_employees_emp_code'), table_name='employees')
    op.drop_index(op.f('ix_employees_id'), table_name='employees')
    op.drop_table('employees')

    bind = op.get_bind()
    for enum_type in (pass_status, pass_type, pass_validity, record_status):
        enum_type.drop(bind, checkfirst=True)
