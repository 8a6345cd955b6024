"""Add watch_segments table and assignments.watched_seconds column

Revision ID: e4b9d2716c08
Revises: a83f0c6e21d7
Create Date: 2026-02-20 09:15:47.120385

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'e4b9d2716c08'
down_revision: Union[str, Sequence[str], None] = 'a83f0c6e21d7'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'watch_segments',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('assignment_id', sa.UUID, sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False,
                  index=True),
        sa.Column('start_sec', sa.Float, nullable=False),
        sa.Column('end_sec', sa.Float, nullable=False),
        sa.CheckConstraint('start_sec >= 0 and end_sec > start_sec', name='watch_segments_range'),
    )
    op.add_column('assignments', sa.Column('watched_seconds', sa.Float, nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column('assignments', 'watched_seconds')
    op.drop_table('watch_segments')
