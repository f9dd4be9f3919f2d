"""initial booking schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

LIVE_BOOKING = "status != 'cancelled' AND deleted_at IS NULL"


def upgrade():
    op.create_table(
        'users',
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.Text(), unique=True),
        sa.Column('timezone', sa.Text(), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column('created_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    op.create_table(
        'services',
        sa.Column('provider_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False, server_default=sa.text('0')),
        sa.Column('is_active', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('description', sa.Text()),
        sa.Column('deleted_at', sa.DateTime()),
        sa.CheckConstraint('duration_minutes > 0', name='ck_services_duration_positive'),
    )
    op.create_index('ix_services_provider_id', 'services', ['provider_id'])

    op.create_table(
        'availability_windows',
        sa.Column('provider_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.Text(), nullable=False),
        sa.Column('start', sa.Text(), nullable=False),
        sa.Column('end', sa.Text(), nullable=False),
        sa.Column('active', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('week_day', sa.Integer()),
        sa.Column('deleted_at', sa.DateTime()),
        sa.Column('created_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint("kind IN ('recurring', 'once')", name='ck_windows_kind'),
        sa.CheckConstraint("kind = 'once' OR (week_day BETWEEN 0 AND 6)", name='ck_windows_week_day'),
    )
    op.create_index('ix_windows_provider_kind', 'availability_windows', ['provider_id', 'kind'])

    op.create_table(
        'bookings',
        sa.Column('provider_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date_start', sa.DateTime(), nullable=False),
        sa.Column('date_end', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column('version', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.Text(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.Text(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slot_id', sa.Integer(), sa.ForeignKey('availability_windows.id', ondelete='SET NULL')),
        sa.Column('notes', sa.Text()),
        sa.Column('cancelled_by', sa.Text()),
        sa.Column('deleted_at', sa.DateTime()),
    )
    op.create_index(
        'uq_bookings_provider_start_live',
        'bookings',
        ['provider_id', 'date_start'],
        unique=True,
        sqlite_where=sa.text(LIVE_BOOKING),
        postgresql_where=sa.text(LIVE_BOOKING),
    )
    op.create_index('ix_bookings_provider_range', 'bookings', ['provider_id', 'date_start', 'date_end'])
    op.create_index('ix_bookings_customer_range', 'bookings', ['customer_id', 'date_start', 'date_end'])

    op.create_table(
        'schedule_locks',
        sa.Column('key', sa.Text(), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default=sa.text('0')),
    )


def downgrade():
    op.drop_table('schedule_locks')
    op.drop_index('ix_bookings_customer_range', table_name='bookings')
    op.drop_index('ix_bookings_provider_range', table_name='bookings')
    op.drop_index('uq_bookings_provider_start_live', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_windows_provider_kind', table_name='availability_windows')
    op.drop_table('availability_windows')
    op.drop_index('ix_services_provider_id', table_name='services')
    op.drop_table('services')
    op.drop_table('users')
