"""booking engine tables

Revision ID: 4a1f0c2d9e71
Revises:
Create Date: 2026-10-19 10:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4a1f0c2d9e71'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Tenants
    op.create_table(
        'companies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=False),
        sa.Column('notification_channels', sa.JSON(), nullable=True),
        sa.Column('notification_webhook_url', sa.String(500), nullable=True),
        sa.Column('notification_webhook_secret', sa.String(200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )

    op.create_table(
        'professionals',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(200), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('inherits_company_availability', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_professionals_company_id', 'professionals', ['company_id'])

    # 2. Services and who performs them
    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('interval_between_slots_minutes', sa.Integer(), nullable=False),
        sa.Column('simultaneous_bookings_per_slot', sa.Integer(), nullable=False),
        sa.Column('simultaneous_bookings_per_user', sa.Integer(), nullable=False),
        sa.Column('block_24_hours', sa.Boolean(), nullable=False),
        sa.Column('confirmation_type', sa.String(20), nullable=False),
        sa.Column('availability_type', sa.String(20), nullable=False),
        sa.Column('booking_fee_enabled', sa.Boolean(), nullable=False),
        sa.Column('booking_fee_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_services_company_id', 'services', ['company_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    op.create_table(
        'service_professionals',
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id', ondelete='CASCADE'), primary_key=True),
    )

    # 3. Availability layers
    op.create_table(
        'availability_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('owner_type', sa.String(20), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('break_start', sa.Time(), nullable=True),
        sa.Column('break_end', sa.Time(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('owner_type', 'owner_id', 'day_of_week', name='uq_availability_rule_owner_day'),
    )
    op.create_index('ix_availability_rules_company_id', 'availability_rules', ['company_id'])
    op.create_index('ix_availability_rules_owner_id', 'availability_rules', ['owner_id'])

    op.create_table(
        'availability_overrides',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id', ondelete='CASCADE'), nullable=True),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('break_start', sa.Time(), nullable=True),
        sa.Column('break_end', sa.Time(), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_availability_overrides_company_id', 'availability_overrides', ['company_id'])
    op.create_index('ix_availability_overrides_date', 'availability_overrides', ['date'])

    op.create_table(
        'agenda_blocks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id', ondelete='CASCADE'), nullable=True),
        sa.Column('start_datetime', sa.DateTime(), nullable=False),
        sa.Column('end_datetime', sa.DateTime(), nullable=False),
        sa.Column('repeats_weekly', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_agenda_blocks_company_id', 'agenda_blocks', ['company_id'])

    # 4. Booking ledger
    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id'), nullable=False),
        sa.Column('client_id', sa.String(100), nullable=False),
        sa.Column('start_datetime', sa.DateTime(), nullable=False),
        sa.Column('end_datetime', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('payment_reference', sa.String(200), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(20), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
    )
    op.create_index('ix_bookings_company_id', 'bookings', ['company_id'])
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])
    op.create_index('ix_bookings_professional_window', 'bookings', ['professional_id', 'start_datetime', 'end_datetime'])

    # 5. Out-of-band delivery log
    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('booking_id', sa.Uuid(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('event', sa.String(50), nullable=False),
        sa.Column('recipient', sa.String(20), nullable=False),
        sa.Column('channel', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('response_status_code', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notification_logs_booking_id', 'notification_logs', ['booking_id'])
    op.create_index('ix_notification_logs_company_id', 'notification_logs', ['company_id'])

    # 6. Company notification wording and on/off switches
    op.create_table(
        'notification_templates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event', sa.String(50), nullable=False),
        sa.Column('recipient', sa.String(20), nullable=False),
        sa.Column('channel', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('company_id', 'event', 'recipient', 'channel', name='uq_notification_template_target'),
    )
    op.create_index('ix_notification_templates_company_id', 'notification_templates', ['company_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('notification_templates')
    op.drop_table('notification_logs')
    op.drop_table('bookings')
    op.drop_table('agenda_blocks')
    op.drop_table('availability_overrides')
    op.drop_table('availability_rules')
    op.drop_table('service_professionals')
    op.drop_table('services')
    op.drop_table('professionals')
    op.drop_table('companies')
