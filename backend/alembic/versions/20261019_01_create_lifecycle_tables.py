"""create users, bookings, booking_talents, contracts, signatures, notifications

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '20261019_01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _status(name: str, *values: str) -> sa.Enum:
    # VARCHAR + CHECK on both SQLite and Postgres
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=32)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('role', _status('user_role', 'admin', 'talent', 'client'), nullable=False),
        sa.Column('status', _status('user_status', 'active', 'pending', 'suspended'), nullable=False),
        sa.Column('guardian_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('deliverables', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column(
            'status',
            _status(
                'booking_status',
                'inquiry', 'proposed', 'contract_sent', 'signed',
                'invoiced', 'paid', 'completed', 'cancelled',
            ),
            nullable=False,
        ),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('end_date >= start_date', name='ck_bookings_date_range'),
        sa.CheckConstraint('rate IS NULL OR rate >= 0', name='ck_bookings_rate_non_negative'),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_code', 'bookings', ['code'], unique=True)
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])
    op.create_index('ix_bookings_start_date', 'bookings', ['start_date'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])

    op.create_table(
        'booking_talents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('talent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'request_status',
            _status('booking_request_status', 'pending', 'accepted', 'declined'),
            nullable=False,
        ),
        sa.Column('response_message', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_booking_talents_id', 'booking_talents', ['id'])
    op.create_index('ix_booking_talents_booking_id', 'booking_talents', ['booking_id'])
    op.create_index('ix_booking_talents_talent_id', 'booking_talents', ['talent_id'])
    op.create_index('ix_booking_talents_request_status', 'booking_talents', ['request_status'])
    op.create_index(
        'uq_booking_talents_pending_pair',
        'booking_talents',
        ['booking_id', 'talent_id'],
        unique=True,
        sqlite_where=sa.text("request_status = 'pending'"),
        postgresql_where=sa.text("request_status = 'pending'"),
    )

    op.create_table(
        'contracts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('booking_talent_id', sa.Integer(), sa.ForeignKey('booking_talents.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('pdf_url', sa.String(), nullable=True),
        sa.Column(
            'status',
            _status('contract_status', 'draft', 'sent', 'signed', 'expired', 'cancelled'),
            nullable=False,
        ),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('signed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_contracts_id', 'contracts', ['id'])
    op.create_index('ix_contracts_booking_id', 'contracts', ['booking_id'])
    op.create_index('ix_contracts_booking_talent_id', 'contracts', ['booking_talent_id'])
    op.create_index('ix_contracts_status', 'contracts', ['status'])
    op.create_index(
        'uq_contracts_active_booking_talent',
        'contracts',
        ['booking_talent_id'],
        unique=True,
        sqlite_where=sa.text("status != 'cancelled'"),
        postgresql_where=sa.text("status != 'cancelled'"),
    )

    op.create_table(
        'signatures',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('contract_id', sa.Integer(), sa.ForeignKey('contracts.id'), nullable=False),
        sa.Column('signer_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'signer_kind',
            _status('signer_kind', 'talent', 'guardian', 'client', 'co_signer'),
            nullable=False,
        ),
        sa.Column('signature_image_url', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column(
            'status',
            _status('signature_status', 'pending', 'signed', 'expired'),
            nullable=False,
        ),
        sa.Column('signed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('contract_id', 'signer_id', name='uq_signatures_contract_signer'),
    )
    op.create_index('ix_signatures_id', 'signatures', ['id'])
    op.create_index('ix_signatures_contract_id', 'signatures', ['contract_id'])
    op.create_index('ix_signatures_signer_id', 'signatures', ['signer_id'])
    op.create_index('ix_signatures_status', 'signatures', ['status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'type',
            _status(
                'notification_type',
                'invitation_sent', 'invitation_accepted', 'invitation_declined',
                'contract_sent', 'contract_fully_signed', 'booking_status_changed',
            ),
            nullable=False,
        ),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('link', sa.String(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('signatures')
    op.drop_table('contracts')
    op.drop_table('booking_talents')
    op.drop_table('bookings')
    op.drop_table('users')
