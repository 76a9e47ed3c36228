"""initial roster schema

Revision ID: 4f1d9a2c7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1d9a2c7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _fk_shift():
    return sa.Column('shift_id', sa.Integer(), sa.ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False)


def upgrade() -> None:
    op.create_table(
        'staff',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_staff_name', 'staff', ['name'])

    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('client_instruction', sa.Text(), nullable=True),
        sa.Column('property_info', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'team_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('staff_id', sa.Integer(), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('team_id', 'staff_id', name='uq_team_member'),
    )
    op.create_index('ix_team_members_team_id', 'team_members', ['team_id'])
    op.create_index('ix_team_members_staff_id', 'team_members', ['staff_id'])

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('unit', sa.String(length=120), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('accuracy', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('place_id', sa.String(length=255), nullable=True),
        sa.Column('formatted_address', sa.String(length=500), nullable=True),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('unit', 'name', name='uq_location_unit_name'),
    )

    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('theme', sa.String(length=16), nullable=False),
        sa.Column('assignment_type', sa.String(length=16), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('include_location', sa.Boolean(), nullable=False),
        sa.Column('shift_instructions', sa.Text(), nullable=True),
        sa.Column('job_state', sa.String(length=16), nullable=False),
        sa.Column('job_started', sa.Boolean(), nullable=False),
        sa.Column('job_started_at', sa.DateTime(), nullable=True),
        sa.Column('job_paused', sa.Boolean(), nullable=False),
        sa.Column('job_ended_at', sa.DateTime(), nullable=True),
        sa.Column('scheduled_in_time', sa.DateTime(), nullable=True),
        sa.Column('scheduled_out_time', sa.DateTime(), nullable=True),
        sa.Column('logged_in_time', sa.DateTime(), nullable=True),
        sa.Column('logged_out_time', sa.DateTime(), nullable=True),
        sa.Column('travel_distance_km', sa.Float(), nullable=True),
        sa.Column('travel_duration_min', sa.Integer(), nullable=True),
        sa.Column('travel_from_location', sa.String(length=500), nullable=True),
        sa.Column('travel_is_estimate', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('start_time < end_time', name='ck_shift_start_before_end'),
        sa.CheckConstraint("theme in ('Primary','Warning','Success','Danger')", name='ck_shift_theme'),
        sa.CheckConstraint("assignment_type in ('individual','team')", name='ck_shift_assignment_type'),
        sa.CheckConstraint(
            "job_state in ('not_started','running','paused','ended')", name='ck_shift_job_state'
        ),
    )
    op.create_index('ix_shifts_start_time', 'shifts', ['start_time'])
    op.create_index('ix_shifts_end_time', 'shifts', ['end_time'])
    op.create_index('ix_shift_start_end', 'shifts', ['start_time', 'end_time'])

    op.create_table(
        'shift_staff',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('staff_id', sa.Integer(), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_in_shift', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "role_in_shift in ('assigned','supervisor','team_member')", name='ck_shift_staff_role'
        ),
        sa.UniqueConstraint('shift_id', 'staff_id', 'role_in_shift', name='uq_shift_staff_role'),
    )
    op.create_index('ix_shift_staff_shift_id', 'shift_staff', ['shift_id'])
    op.create_index('ix_shift_staff_staff_id', 'shift_staff', ['staff_id'])

    op.create_table(
        'shift_teams',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('shift_id', 'team_id', name='uq_shift_team'),
    )
    op.create_index('ix_shift_teams_shift_id', 'shift_teams', ['shift_id'])
    op.create_index('ix_shift_teams_team_id', 'shift_teams', ['team_id'])

    op.create_table(
        'shift_clients',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('shift_id', 'client_id', name='uq_shift_client'),
    )
    op.create_index('ix_shift_clients_shift_id', 'shift_clients', ['shift_id'])
    op.create_index('ix_shift_clients_client_id', 'shift_clients', ['client_id'])

    op.create_table(
        'shift_locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_shift_locations_shift_id', 'shift_locations', ['shift_id'])
    op.create_index('ix_shift_locations_location_id', 'shift_locations', ['location_id'])

    op.create_table(
        'shift_pause_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('paused_at', sa.DateTime(), nullable=False),
        sa.Column('resumed_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('shift_id', 'seq', name='uq_pause_shift_seq'),
        sa.CheckConstraint('resumed_at is null or resumed_at >= paused_at', name='ck_pause_order'),
    )
    op.create_index('ix_shift_pause_entries_shift_id', 'shift_pause_entries', ['shift_id'])

    op.create_table(
        'shift_instructions',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('instruction_text', sa.Text(), nullable=False),
        sa.Column('instruction_type', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_shift_instructions_shift_id', 'shift_instructions', ['shift_id'])

    op.create_table(
        'shift_messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk_shift(),
        sa.Column('message_text', sa.Text(), nullable=False),
        sa.Column('staff_id', sa.Integer(), sa.ForeignKey('staff.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_shift_messages_shift_id', 'shift_messages', ['shift_id'])


def downgrade() -> None:
    for t in (
        'shift_messages', 'shift_instructions', 'shift_pause_entries', 'shift_locations',
        'shift_clients', 'shift_teams', 'shift_staff', 'shifts', 'locations',
        'team_members', 'teams', 'clients', 'staff',
    ):
        op.drop_table(t)
