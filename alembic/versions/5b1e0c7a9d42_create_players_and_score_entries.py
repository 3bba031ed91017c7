"""create_players_and_score_entries

Revision ID: 5b1e0c7a9d42
Revises:
Create Date: 2026-10-19 10:12:31.402118

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '5b1e0c7a9d42'
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'players',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('grade', sa.String(length=2), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_active', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_players_id', 'players', ['id'])
    op.create_index('ix_players_username', 'players', ['username'], unique=True)

    op.create_table(
        'score_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('game_type', sa.String(length=20), nullable=False),
        sa.Column('subject', sa.String(length=20), nullable=False),
        sa.Column('grade', sa.String(length=2), nullable=False),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('penalty', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),

        sa.ForeignKeyConstraint(['player_id'], ['players.id'], name='fk_score_entries_player_id_players', ondelete='CASCADE'),
    )

    # Índices
    op.create_index('ix_score_entries_player_id', 'score_entries', ['player_id'])


def downgrade() -> None:
    op.drop_index('ix_score_entries_player_id', table_name='score_entries')
    op.drop_table('score_entries')
    op.drop_index('ix_players_username', table_name='players')
    op.drop_index('ix_players_id', table_name='players')
    op.drop_table('players')
