"""initial repair desk tables

Revision ID: 0001_initial_repairdesk
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_repairdesk'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table('customers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_customers_email', 'customers', ['email'])

    op.create_table('appointments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('appointment_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='scheduled'),
        sa.Column('status_reason', sa.String(length=500), nullable=True),
        sa.Column('assigned_to', sa.String(length=64), nullable=True),
        sa.Column('converted_to_ticket_id', sa.String(length=36), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    for col in ('customer_id', 'status', 'assigned_to', 'converted_to_ticket_id'):
        op.create_index(f'ix_appointments_{col}', 'appointments', [col])

    op.create_table('repair_tickets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('ticket_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('appointment_id', sa.String(length=36), sa.ForeignKey('appointments.id'), nullable=True),
        sa.Column('device_brand', sa.String(length=80), nullable=True),
        sa.Column('device_model', sa.String(length=80), nullable=True),
        sa.Column('issue_summary', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='new'),
        sa.Column('status_reason', sa.String(length=500), nullable=True),
        sa.Column('assigned_to', sa.String(length=64), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    for col in ('customer_id', 'appointment_id', 'status', 'assigned_to'):
        op.create_index(f'ix_repair_tickets_{col}', 'repair_tickets', [col])

    op.create_table('time_entries',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('ticket_id', sa.String(length=36), sa.ForeignKey('repair_tickets.id'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
    )
    op.create_index('ix_time_entries_ticket_id', 'time_entries', ['ticket_id'])

    op.create_table('ticket_notes',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('ticket_id', sa.String(length=36), sa.ForeignKey('repair_tickets.id'), nullable=False),
        sa.Column('note_type', sa.String(length=16), nullable=False, server_default='internal'),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_important', sa.Boolean(), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_ticket_notes_ticket_id', 'ticket_notes', ['ticket_id'])

    op.create_table('customer_devices',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('device_id', sa.String(length=36), nullable=True),
        sa.Column('device_type', sa.String(length=80), nullable=True),
        sa.Column('model', sa.String(length=80), nullable=True),
        sa.Column('serial_number', sa.String(length=64), nullable=True),
        sa.Column('imei', sa.String(length=32), nullable=True),
        sa.Column('nickname', sa.String(length=80), nullable=True),
    )
    op.create_index('ix_customer_devices_customer_id', 'customer_devices', ['customer_id'])

    op.create_table('notification_preferences',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('channel', sa.String(length=16), nullable=False, server_default='email'),
        sa.Column('event', sa.String(length=64), nullable=False, server_default='status_change'),
        sa.Column('enabled', sa.Boolean(), nullable=True),
    )
    op.create_index('ix_notification_preferences_customer_id', 'notification_preferences', ['customer_id'])

    op.create_table('comments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_comments_entity_type', 'comments', ['entity_type'])
    op.create_index('ix_comments_entity_id', 'comments', ['entity_id'])

    op.create_table('internal_notifications',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=48), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=False),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='normal'),
        sa.Column('action_url', sa.String(length=255), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_internal_notifications_user_id', 'internal_notifications', ['user_id'])
    op.create_index('ix_internal_notifications_type', 'internal_notifications', ['type'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('perms_snapshot', sa.JSON(), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade():
    for table in ('audit_logs', 'internal_notifications', 'comments', 'notification_preferences', 'customer_devices',
                  'ticket_notes', 'time_entries', 'repair_tickets', 'appointments', 'customers'):
        op.drop_table(table)
