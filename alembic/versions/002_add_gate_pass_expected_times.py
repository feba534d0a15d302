"""Add expected exit and return times to gate passes

Revision ID: 002_gate_pass_expected_times
Revises: 001_initial_attendance
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002_gate_pass_expected_times'
down_revision: Union[str, None] = '001_initial_attendance'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

COLUMNS = ('expected_exit_time', 'expected_return_time')


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = {col['name'] for col in inspector.get_columns('gate_passes')}

    with op.batch_alter_table('gate_passes') as batch_op:
        for name in COLUMNS:
            if name not in existing:
                batch_op.add_column(sa.Column(name, sa.DateTime(timezone=True), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table('gate_passes') as batch_op:
        for name in reversed(COLUMNS):
            batch_op.drop_column(name)
