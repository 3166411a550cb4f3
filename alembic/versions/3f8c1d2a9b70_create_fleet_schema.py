"""create_fleet_schema

Revision ID: 3f8c1d2a9b70
Revises:
Create Date: 2026-10-12 09:41:17.502318

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f8c1d2a9b70'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create the fleet tables read by the timeline service."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'rental_hosts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('insurance_type', sa.String(20), nullable=True),
        sa.Column('revenue_split', sa.Integer(), nullable=True),
        sa.Column('earnings_tier', sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_rental_hosts_email', 'rental_hosts', ['email'])

    op.create_table(
        'reviewer_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'vehicles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('host_id', sa.String(36), sa.ForeignKey('rental_hosts.id'), nullable=False),
        sa.Column('make', sa.String(100), nullable=False),
        sa.Column('model', sa.String(100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('vin', sa.String(17), nullable=True),
        sa.Column('current_mileage', sa.Integer(), nullable=True),
        sa.Column('registration_state', sa.String(2), nullable=True),
        sa.Column('registration_expiry_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('title_status', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('idx_vehicles_host', 'vehicles', ['host_id'])

    op.create_table(
        'vehicle_photos',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('vehicle_id', sa.String(36), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('url', sa.String(1000), nullable=False),
        sa.Column('is_hero', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('gps_latitude', sa.Float(), nullable=True),
        sa.Column('gps_longitude', sa.Float(), nullable=True),
        sa.Column('uploaded_by', sa.String(36), nullable=True),
        sa.Column('uploaded_by_type', sa.String(20), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_vehicle_photos_vehicle', 'vehicle_photos', ['vehicle_id', 'created_at'])

    op.create_table(
        'vehicle_service_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('vehicle_id', sa.String(36), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('service_type', sa.String(50), nullable=False),
        sa.Column('service_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('mileage_at_service', sa.Integer(), nullable=True),
        sa.Column('shop_name', sa.String(255), nullable=True),
        sa.Column('shop_address', sa.String(500), nullable=True),
        sa.Column('cost_total', sa.Numeric(10, 2), nullable=True),
        sa.Column('items_serviced', JSONType, nullable=True),
        sa.Column('next_service_due', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_service_mileage', sa.Integer(), nullable=True),
        sa.Column('added_by', sa.String(36), nullable=True),
        sa.Column('added_by_name', sa.String(255), nullable=True),
        sa.Column('added_by_type', sa.String(20), nullable=True),
        sa.Column('verified_by_fleet', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', sa.String(36), nullable=True),
        sa.Column('verified_by_name', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'idx_service_records_vehicle', 'vehicle_service_records', ['vehicle_id', 'service_date']
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_code', sa.String(20), nullable=False, unique=True),
        sa.Column('vehicle_id', sa.String(36), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('guest_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reviewer_id', sa.String(36), sa.ForeignKey('reviewer_profiles.id'), nullable=True),
        sa.Column('guest_name', sa.String(255), nullable=True),
        sa.Column('guest_email', sa.String(255), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('number_of_days', sa.Integer(), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('insurance_tier', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('trip_status', sa.String(20), nullable=True, server_default='NOT_STARTED'),
        sa.Column('check_in_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('check_out_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('check_in_odometer', sa.Integer(), nullable=True),
        sa.Column('check_out_odometer', sa.Integer(), nullable=True),
        sa.Column('check_in_fuel_level', sa.String(20), nullable=True),
        sa.Column('check_out_fuel_level', sa.String(20), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_bookings_vehicle', 'bookings', ['vehicle_id'])
    op.create_index('idx_bookings_created', 'bookings', ['created_at'])

    op.create_table(
        'host_payouts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id'), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('transfer_id', sa.String(100), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_host_payouts_booking', 'host_payouts', ['booking_id'])

    op.create_table(
        'claims',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('estimated_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('approved_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('deductible', sa.Numeric(10, 2), nullable=True),
        sa.Column('incident_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.String(255), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_claims_booking', 'claims', ['booking_id'])

    op.create_table(
        'claim_damage_photos',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('claim_id', sa.String(36), sa.ForeignKey('claims.id'), nullable=False),
        sa.Column('url', sa.String(1000), nullable=False),
        sa.Column('uploaded_by', sa.String(20), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_claim_photos_claim', 'claim_damage_photos', ['claim_id', 'uploaded_at'])

    op.create_table(
        'activity_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('severity', sa.String(20), nullable=True),
        sa.Column('admin_id', sa.String(36), nullable=True),
        sa.Column('host_id', sa.String(36), nullable=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('old_value', JSONType, nullable=True),
        sa.Column('new_value', JSONType, nullable=True),
        sa.Column('metadata', JSONType, nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'idx_activity_logs_entity', 'activity_logs', ['entity_type', 'entity_id', 'created_at']
    )


def downgrade() -> None:
    """Drop the fleet tables (children first)."""
    op.drop_table('activity_logs')
    op.drop_table('claim_damage_photos')
    op.drop_table('claims')
    op.drop_table('host_payouts')
    op.drop_table('bookings')
    op.drop_table('vehicle_service_records')
    op.drop_table('vehicle_photos')
    op.drop_table('vehicles')
    op.drop_table('reviewer_profiles')
    op.drop_table('rental_hosts')
    op.drop_table('users')
