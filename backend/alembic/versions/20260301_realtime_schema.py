"""
Realtime Schema - Create the tables the realtime layer reads and writes

This migration creates:
1. users - Staff accounts (moderator / admin) with presence flag and push token
2. pilgrims - Pilgrim accounts with presence flag and push token
3. call_history - One row per call attempt and its outcome

Revision ID: 20260301_realtime_schema
Revises:
Create Date: 2026-03-01
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20260301_realtime_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================
    # USERS (staff)
    # ============================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='moderator'),
        sa.Column('push_token', sa.String(length=512), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('last_active_at', sa.DateTime(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("role IN ('moderator', 'admin')", name='ck_user_role'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_phone_number', 'users', ['phone_number'], unique=True)
    op.create_index('ix_users_is_online', 'users', ['is_online'])

    # ============================================
    # PILGRIMS
    # ============================================
    op.create_table(
        'pilgrims',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('national_id', sa.String(length=50), nullable=True, unique=True),
        sa.Column('phone_number', sa.String(length=20), nullable=True, unique=True),
        sa.Column('push_token', sa.String(length=512), nullable=True),
        sa.Column('battery_percent', sa.Integer(), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('last_active_at', sa.DateTime(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_pilgrims_is_online', 'pilgrims', ['is_online'])

    # ============================================
    # CALL HISTORY
    # ============================================
    op.create_table(
        'call_history',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('caller_id', sa.String(length=36), nullable=False),
        sa.Column('receiver_id', sa.String(length=36), nullable=False),
        sa.Column('call_type', sa.String(length=20), nullable=False, server_default='internet'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='ringing'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_call_history_caller_id', 'call_history', ['caller_id'])
    op.create_index('ix_call_history_receiver_id', 'call_history', ['receiver_id'])
    op.create_index('ix_call_history_status', 'call_history', ['status'])
    op.create_index('idx_call_history_caller_created', 'call_history', ['caller_id', 'created_at'])
    op.create_index('idx_call_history_receiver_created', 'call_history', ['receiver_id', 'created_at'])


def downgrade():
    op.drop_table('call_history')
    op.drop_table('pilgrims')
    op.drop_table('users')
