"""create booking engine tables

Revision ID: 4b1d2e7a9c30
Revises:
Create Date: 2026-10-18 10:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b1d2e7a9c30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Businesses and providers
    op.create_table(
        'businesses',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(50), server_default='UTC', nullable=True),
        sa.Column('business_hours', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=True),
        *_timestamps()
    )

    op.create_table(
        'providers',
        _uuid_pk(),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(10), server_default='provider', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('verification_status', sa.String(30), server_default='pending', nullable=True),
        sa.Column('background_check_status', sa.String(30), server_default='pending', nullable=True),
        sa.Column('default_location_mode', sa.String(20), server_default='both', nullable=False),
        *_timestamps(),
        sa.CheckConstraint("role IN ('owner', 'dispatcher', 'provider')", name='providers_role_check')
    )
    op.create_index('ix_providers_business_id', 'providers', ['business_id'])

    # 2. Weekly availability and blocked dates
    op.create_table(
        'provider_availability',
        _uuid_pk(),
        sa.Column('provider_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('providers.id'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('location_mode', sa.String(20), server_default='both', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('origin', sa.String(20), server_default='manual', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='provider_availability_day_check'),
        sa.CheckConstraint('start_time < end_time', name='provider_availability_window_check')
    )
    op.create_index('ix_provider_availability_provider_id', 'provider_availability', ['provider_id'])
    op.create_index(
        'uq_provider_availability_active_day',
        'provider_availability',
        ['provider_id', 'day_of_week'],
        unique=True,
        postgresql_where=sa.text('is_active')
    )

    op.create_table(
        'provider_blocked_intervals',
        _uuid_pk(),
        sa.Column('provider_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('providers.id'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('start_date <= end_date', name='provider_blocked_intervals_range_check')
    )
    op.create_index('ix_provider_blocked_intervals_provider_id', 'provider_blocked_intervals', ['provider_id'])

    # 3. Booking preferences
    op.create_table(
        'provider_booking_preferences',
        _uuid_pk(),
        sa.Column('provider_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('providers.id'), nullable=False, unique=True),
        sa.Column('max_bookings_per_day', sa.Integer(), server_default='8', nullable=False),
        sa.Column('slot_duration_minutes', sa.Integer(), server_default='60', nullable=False),
        sa.Column('buffer_minutes', sa.Integer(), server_default='15', nullable=False),
        sa.Column('min_advance_hours', sa.Integer(), server_default='2', nullable=False),
        sa.Column('max_advance_days', sa.Integer(), server_default='30', nullable=False),
        sa.Column('auto_accept_bookings', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('allow_cancellation', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('cancellation_window_hours', sa.Integer(), server_default='24', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('max_bookings_per_day >= 1', name='booking_prefs_daily_cap_positive'),
        sa.CheckConstraint('slot_duration_minutes > 0', name='booking_prefs_slot_positive'),
        sa.CheckConstraint('buffer_minutes >= 0', name='booking_prefs_buffer_non_negative'),
        sa.CheckConstraint('min_advance_hours >= 0', name='booking_prefs_advance_non_negative')
    )

    # 4. Service catalog
    op.create_table(
        'services',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('min_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True)
    )
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    op.create_table(
        'service_addons',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True)
    )
    op.create_index('ix_service_addons_is_active', 'service_addons', ['is_active'])

    op.create_table(
        'service_addon_eligibility',
        _uuid_pk(),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
        sa.Column('addon_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('service_addons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_recommended', sa.Boolean(), server_default=sa.text('false'), nullable=True),
        sa.UniqueConstraint('service_id', 'addon_id', name='uq_service_addon_eligibility')
    )
    op.create_index('ix_service_addon_eligibility_service_id', 'service_addon_eligibility', ['service_id'])

    op.create_table(
        'business_services',
        _uuid_pk(),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('delivery_type', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('business_id', 'service_id', name='uq_business_services_business_service')
    )
    op.create_index('ix_business_services_business_id', 'business_services', ['business_id'])

    # 5. Bookings and their audit trail
    op.create_table(
        'bookings',
        _uuid_pk(),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('provider_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('providers.id'), nullable=True),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id'), nullable=True),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        *_timestamps()
    )
    op.create_index('ix_bookings_business_id', 'bookings', ['business_id'])
    op.create_index('ix_bookings_provider_id', 'bookings', ['provider_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('idx_bookings_provider_date', 'bookings', ['provider_id', 'booking_date'])

    op.create_table(
        'booking_status_history',
        _uuid_pk(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('event', sa.String(20), server_default='status', nullable=False),
        sa.Column('from_status', sa.String(20), nullable=True),
        sa.Column('to_status', sa.String(20), nullable=False),
        sa.Column('from_provider_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('to_provider_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('changed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_role', sa.String(20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('changed_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True)
    )
    op.create_index('ix_booking_status_history_booking_id', 'booking_status_history', ['booking_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('booking_status_history')
    op.drop_table('bookings')
    op.drop_table('business_services')
    op.drop_table('service_addon_eligibility')
    op.drop_table('service_addons')
    op.drop_table('services')
    op.drop_table('provider_booking_preferences')
    op.drop_table('provider_blocked_intervals')
    op.drop_index('uq_provider_availability_active_day', table_name='provider_availability')
    op.drop_table('provider_availability')
    op.drop_table('providers')
    op.drop_table('businesses')
