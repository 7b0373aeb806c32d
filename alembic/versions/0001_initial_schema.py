"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ROWS = sa.text('deleted_at IS NULL')

member_role_enum = postgresql.ENUM(
    'member', 'admin', 'owner', name='member_role_enum', create_type=False
)
attendance_type_enum = postgresql.ENUM(
    'present', 'absent', 'late', 'excused', name='attendance_type_enum', create_type=False
)


def _base_columns() -> list:
    return [
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - create study club tables."""
    member_role_enum.create(op.get_bind(), checkfirst=True)
    attendance_type_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('nickname', sa.String(length=64), nullable=True),
        sa.Column('provider', sa.String(length=32), nullable=False),
        sa.Column('provider_id', sa.String(length=128), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_deleted_at', 'users', ['deleted_at'])
    op.create_index(
        'uq_users_provider_identity_active', 'users', ['provider', 'provider_id'],
        unique=True, postgresql_where=ACTIVE_ROWS
    )

    op.create_table(
        'communities',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('region', sa.String(length=50), nullable=True),
        sa.Column('sub_region', sa.String(length=50), nullable=True),
        sa.Column('tags', postgresql.ARRAY(sa.String()), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_communities_deleted_at', 'communities', ['deleted_at'])
    op.create_index(
        'uq_communities_name_active', 'communities', ['name'],
        unique=True, postgresql_where=ACTIVE_ROWS
    )

    op.create_table(
        'community_members',
        *_base_columns(),
        sa.Column('community_id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('role', member_role_enum, nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['community_id'], ['communities.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_community_members_deleted_at', 'community_members', ['deleted_at'])
    op.create_index('ix_community_members_community_id', 'community_members', ['community_id'])
    op.create_index('ix_community_members_user_id', 'community_members', ['user_id'])
    op.create_index(
        'uq_community_members_active', 'community_members', ['community_id', 'user_id'],
        unique=True, postgresql_where=ACTIVE_ROWS
    )

    op.create_table(
        'reactions',
        *_base_columns(),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('text', sa.String(length=500), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['community_members.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reactions_deleted_at', 'reactions', ['deleted_at'])
    op.create_index('ix_reactions_user_id', 'reactions', ['user_id'])
    op.create_index('ix_reactions_member_id', 'reactions', ['member_id'])

    op.create_table(
        'rounds',
        *_base_columns(),
        sa.Column('community_id', UUID(as_uuid=True), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['community_id'], ['communities.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_rounds_deleted_at', 'rounds', ['deleted_at'])
    op.create_index('ix_rounds_community_id', 'rounds', ['community_id'])

    op.create_table(
        'attendance',
        *_base_columns(),
        sa.Column('round_id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('attendance_type', attendance_type_enum, nullable=False),
        sa.Column('attended_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['round_id'], ['rounds.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_attendance_deleted_at', 'attendance', ['deleted_at'])
    op.create_index('ix_attendance_round_id', 'attendance', ['round_id'])
    op.create_index('ix_attendance_user_id', 'attendance', ['user_id'])
    op.create_index(
        'uq_attendance_round_user_active', 'attendance', ['round_id', 'user_id'],
        unique=True, postgresql_where=ACTIVE_ROWS
    )

    op.create_table(
        'study_goals',
        *_base_columns(),
        sa.Column('owner_id', UUID(as_uuid=True), nullable=False),
        sa.Column('community_id', UUID(as_uuid=True), nullable=True),
        sa.Column('round_id', UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_team', sa.Boolean(), nullable=False),
        sa.Column('is_complete', sa.Boolean(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.ForeignKeyConstraint(['community_id'], ['communities.id']),
        sa.ForeignKeyConstraint(['round_id'], ['rounds.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_study_goals_deleted_at', 'study_goals', ['deleted_at'])
    op.create_index('ix_study_goals_owner_id', 'study_goals', ['owner_id'])
    op.create_index('ix_study_goals_community_id', 'study_goals', ['community_id'])
    op.create_index('ix_study_goals_round_id', 'study_goals', ['round_id'])

    op.create_table(
        'notifications',
        *_base_columns(),
        sa.Column('community_id', UUID(as_uuid=True), nullable=False),
        sa.Column('author_id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['community_id'], ['communities.id']),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_deleted_at', 'notifications', ['deleted_at'])
    op.create_index('ix_notifications_community_id', 'notifications', ['community_id'])
    op.create_index('ix_notifications_author_id', 'notifications', ['author_id'])


def downgrade() -> None:
    """Downgrade schema - drop study club tables."""
    for table in (
        'notifications',
        'study_goals',
        'attendance',
        'rounds',
        'reactions',
        'community_members',
        'communities',
        'users',
    ):
        op.drop_table(table)

    attendance_type_enum.drop(op.get_bind(), checkfirst=True)
    member_role_enum.drop(op.get_bind(), checkfirst=True)
