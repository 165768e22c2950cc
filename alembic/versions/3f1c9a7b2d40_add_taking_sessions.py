"""add_taking_sessions

Revision ID: 3f1c9a7b2d40
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7b2d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('taking_sessions',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='in_progress'),
        sa.Column('score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('passed', sa.Boolean(), nullable=True),
        sa.Column('state_json', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_taking_sessions_id', 'taking_sessions', ['id'])
    op.create_index('ix_taking_sessions_test_id', 'taking_sessions', ['test_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_taking_sessions_test_id', table_name='taking_sessions')
    op.drop_index('ix_taking_sessions_id', table_name='taking_sessions')
    op.drop_table('taking_sessions')
