"""Add watch_starts table

Revision ID: a83f0c6e21d7
Revises: 5c1e7a9d40b2
Create Date: 2026-02-09 17:33:04.551920

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a83f0c6e21d7'
down_revision: Union[str, Sequence[str], None] = '5c1e7a9d40b2'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'watch_starts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('assignment_id', sa.UUID, sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False,
                  index=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('watch_starts')
