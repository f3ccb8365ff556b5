"""create game_events table

Revision ID: 1a7c3e9d2b40
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a7c3e9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'game_events' in set(insp.get_table_names()):
        return

    op.create_table(
        'game_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('gid', sa.String(length=64), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('uid', sa.String(length=64), nullable=True),
        sa.Column('ts', sa.BigInteger(), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('event_payload', sa.JSON(), nullable=False),
        sa.UniqueConstraint('gid', 'seq', name='uq_game_events_gid_seq'),
    )
    op.create_index('ix_game_events_gid', 'game_events', ['gid'])
    op.create_index('ix_game_events_event_type', 'game_events', ['event_type'])


def downgrade():
    op.drop_index('ix_game_events_event_type', table_name='game_events')
    op.drop_index('ix_game_events_gid', table_name='game_events')
    op.drop_table('game_events')
