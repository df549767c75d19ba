"""create leaderboard_entry and leaderboard_revision

Revision ID: 3a7c5e9b21d4
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c5e9b21d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'leaderboard_entry',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('region', sa.String(length=64), nullable=False),
        sa.Column('security_code', sa.String(length=128), nullable=True),
        sa.Column('final_score', sa.Integer(), nullable=False),
        sa.Column('intro_score', sa.Integer(), nullable=False),
        sa.Column('mcq_score', sa.Integer(), nullable=False),
        sa.Column('easy_score', sa.Integer(), nullable=False),
        sa.Column('medium_score', sa.Integer(), nullable=False),
        sa.Column('hard_score', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('leaderboard_entry') as batch_op:
        batch_op.create_index('ix_leaderboard_entry_record_id', ['record_id'], unique=True)
        batch_op.create_index('ix_leaderboard_entry_final_score', ['final_score'], unique=False)
        batch_op.create_index('ix_leaderboard_entry_created_at', ['created_at'], unique=False)

    op.create_table(
        'leaderboard_revision',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    op.drop_table('leaderboard_revision')
    with op.batch_alter_table('leaderboard_entry') as batch_op:
        batch_op.drop_index('ix_leaderboard_entry_created_at')
        batch_op.drop_index('ix_leaderboard_entry_final_score')
        batch_op.drop_index('ix_leaderboard_entry_record_id')
    op.drop_table('leaderboard_entry')
