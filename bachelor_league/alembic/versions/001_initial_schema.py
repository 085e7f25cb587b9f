"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 12:00:00.000000

Initial schema: users, leagues, teams, contestants, episodes, scoring_events,
drafts and notifications.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(), nullable=True, unique=True),
        sa.Column('display_name', sa.String(100), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'leagues',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('season', sa.String(50), nullable=False),
        sa.Column('league_code', sa.String(6), nullable=False, unique=True),
        sa.Column('commissioner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='created'),
        sa.Column('settings', JSONType, nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_leagues_commissioner', 'leagues', ['commissioner_id'])
    op.create_index('idx_leagues_code', 'leagues', ['league_code'])

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('league_id', sa.Integer(), sa.ForeignKey('leagues.id'), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('drafted_contestants', JSONType, nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('episode_scores', JSONType, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('league_id', 'owner_id', name='uq_teams_league_owner'),
    )
    op.create_index('idx_teams_league', 'teams', ['league_id'])
    op.create_index('idx_teams_owner', 'teams', ['owner_id'])

    op.create_table(
        'contestants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('league_id', sa.Integer(), sa.ForeignKey('leagues.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('hometown', sa.String(100), nullable=True),
        sa.Column('occupation', sa.String(100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_image_url', sa.String(500), nullable=True),
        sa.Column('is_eliminated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('elimination_episode', sa.Integer(), nullable=True),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('episode_scores', JSONType, nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_contestants_league', 'contestants', ['league_id'])

    op.create_table(
        'episodes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('league_id', sa.Integer(), sa.ForeignKey('leagues.id'), nullable=False),
        sa.Column('episode_number', sa.Integer(), nullable=False),
        sa.Column('air_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_events', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('league_id', 'episode_number', name='uq_episodes_league_number'),
    )
    op.create_index('idx_episodes_league_active', 'episodes', ['league_id', 'is_active'])

    op.create_table(
        'scoring_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('episode_id', sa.Integer(), sa.ForeignKey('episodes.id'), nullable=False),
        sa.Column('contestant_id', sa.Integer(), sa.ForeignKey('contestants.id'), nullable=False),
        sa.Column('action_type', sa.String(50), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('scored_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('idx_scoring_events_episode', 'scoring_events', ['episode_id', 'created_at'])
    op.create_index('idx_scoring_events_contestant', 'scoring_events', ['contestant_id'])

    op.create_table(
        'drafts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('league_id', sa.Integer(), sa.ForeignKey('leagues.id'), nullable=False, unique=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='not_started'),
        sa.Column('current_pick', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_turn_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('draft_order', JSONType, nullable=False),
        sa.Column('picks', JSONType, nullable=False),
        sa.Column('settings', JSONType, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('league_id', sa.Integer(), sa.ForeignKey('leagues.id'), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('data', JSONType, nullable=True),
        sa.Column('target_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('idx_notifications_league_created', 'notifications', ['league_id', 'created_at'])
    op.create_index('idx_notifications_expires', 'notifications', ['expires_at'])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        'notifications',
        'drafts',
        'scoring_events',
        'episodes',
        'contestants',
        'teams',
        'leagues',
        'users',
    ):
        op.drop_table(table)
