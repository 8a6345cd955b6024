"""Baseline

Revision ID: 5c1e7a9d40b2
Revises: 
Create Date: 2026-02-02 10:12:31.408116

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e7a9d40b2'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'profiles',
        sa.Column('id', sa.UUID, primary_key=True),
        sa.Column('role', sa.String(), nullable=False, server_default='student'),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('teacher_id', sa.UUID, sa.ForeignKey('profiles.id'), nullable=True),
    )
    op.create_table(
        'access_tokens',
        sa.Column('token', sa.String(), primary_key=True),
        sa.Column('profile_id', sa.UUID, sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('created_time', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'videos',
        sa.Column('id', sa.UUID, primary_key=True),
        sa.Column('video_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
    )
    op.create_table(
        'assignments',
        sa.Column('id', sa.UUID, primary_key=True),
        sa.Column('user_id', sa.UUID, sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('video_id', sa.UUID, sa.ForeignKey('videos.id'), nullable=False),
        sa.Column('progress_percent', sa.Float, nullable=True),
        sa.Column('is_completed', sa.Boolean, nullable=True),
        sa.Column('last_position', sa.Float, nullable=True),
        sa.Column('last_watched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('prevent_skip', sa.Boolean, nullable=False, server_default=sa.true()),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('assignments')
    op.drop_table('videos')
    op.drop_table('access_tokens')
    op.drop_table('profiles')
