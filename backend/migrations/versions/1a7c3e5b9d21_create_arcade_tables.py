"""create user, user_game_stat and game_score tables

Revision ID: 1a7c3e5b9d21
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a7c3e5b9d21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('wallet_address', sa.String(length=128), nullable=False),
            sa.Column('total_points', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('minted_points', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('last_played', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.CheckConstraint('minted_points <= total_points', name='ck_user_minted_le_total'),
        )
        op.create_index('ix_user_wallet_address', 'user', ['wallet_address'], unique=True)

    if 'user_game_stat' not in existing_tables:
        op.create_table(
            'user_game_stat',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('game_type', sa.String(length=32), nullable=False),
            sa.Column('high_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
            sa.UniqueConstraint('user_id', 'game_type', name='uq_user_game_stat_user_game'),
        )
        op.create_index('ix_user_game_stat_user_id', 'user_game_stat', ['user_id'])

    if 'game_score' not in existing_tables:
        op.create_table(
            'game_score',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('wallet_address', sa.String(length=128), nullable=False),
            sa.Column('game_type', sa.String(length=32), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('points', sa.Integer(), nullable=False),
            sa.Column('game_data', sa.JSON(), nullable=False),
            sa.Column('idempotency_key', sa.String(length=128), nullable=True),
            sa.Column('played_at', sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint('user_id', 'idempotency_key', name='uq_game_score_user_idempotency_key'),
        )
        op.create_index('ix_game_score_user_id', 'game_score', ['user_id'])
        op.create_index('ix_game_score_wallet_address', 'game_score', ['wallet_address'])
        op.create_index('ix_game_score_game_type', 'game_score', ['game_type'])
        op.create_index('ix_game_score_played_at', 'game_score', ['played_at'])
        op.create_index('ix_game_score_game_type_score', 'game_score', ['game_type', 'score'])


def downgrade():
    op.drop_table('game_score')
    op.drop_table('user_game_stat')
    op.drop_index('ix_user_wallet_address', table_name='user')
    op.drop_table('user')
