"""initial schema for users, appointments, payments and the health probe table

Revision ID: 20261012_090000
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261012_090000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('email', sa.String(254), nullable=False, unique=True),
        sa.Column('first_name', sa.String(120), nullable=False),
        sa.Column('last_name', sa.String(120), nullable=False),
        sa.Column('phone', sa.String(32)),
        sa.Column('avatar', sa.Text()),
        sa.Column('role', sa.String(16), nullable=False, server_default='client'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # No foreign keys: mirror writes land in any order
    op.create_table(
        'appointments',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('service_type', sa.String(120), nullable=False),
        sa.Column('appointment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('price', sa.Float()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_appointments_user_id', 'appointments', ['user_id'])
    op.create_index('ix_appointments_created_at', 'appointments', ['created_at'])

    op.create_table(
        'payments',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('appointment_id', sa.String(64), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('stripe_payment_intent_id', sa.String(255), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.CheckConstraint('amount >= 0', name='ck_payments_amount_non_negative'),
    )
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])
    op.create_index('ix_payments_appointment_id', 'payments', ['appointment_id'])
    op.create_index('ix_payments_created_at', 'payments', ['created_at'])

    health = op.create_table(
        '_health',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='ok'),
    )
    # Row read by the health probe
    op.bulk_insert(health, [{'id': 'test', 'status': 'ok'}])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('_health')
    op.drop_index('ix_payments_created_at', table_name='payments')
    op.drop_index('ix_payments_appointment_id', table_name='payments')
    op.drop_index('ix_payments_user_id', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_appointments_created_at', table_name='appointments')
    op.drop_index('ix_appointments_user_id', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_table('users')
