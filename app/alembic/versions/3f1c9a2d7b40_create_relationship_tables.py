"""create_relationship_tables

Revision ID: 3f1c9a2d7b40
Revises: 
Create Date: 2026-10-18 12:04:11.512733

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Append-only swipe log
    op.create_table(
        'swipes',
        sa.Column('id_swipe', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('swiper_id', sa.String(length=64), nullable=False),
        sa.Column('swiped_id', sa.String(length=64), nullable=False),
        sa.Column('direction', sa.String(length=10), nullable=False),
        sa.Column('mode', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id_swipe', name='pk_swipes'),
        sa.CheckConstraint('swiper_id <> swiped_id', name='ck_swipes_no_self_swipe'),
        sa.CheckConstraint("direction IN ('left', 'right', 'up')", name='ck_swipes_direction'),
        sa.CheckConstraint("mode IN ('dating', 'friends')", name='ck_swipes_mode'),
    )
    op.create_index('ix_swipes_id_swipe', 'swipes', ['id_swipe'])
    op.create_index('ix_swipes_swiper_id', 'swipes', ['swiper_id'])
    op.create_index('ix_swipes_swiped_id', 'swipes', ['swiped_id'])
    op.create_index('ix_swipes_swiped_mode', 'swipes', ['swiped_id', 'mode'])

    # One row per canonical (user_a_id < user_b_id) pair and mode
    op.create_table(
        'match_pairs',
        sa.Column('id_match_pair', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_a_id', sa.String(length=64, collation='C'), nullable=False),
        sa.Column('user_b_id', sa.String(length=64, collation='C'), nullable=False),
        sa.Column('mode', sa.String(length=20), nullable=False),
        sa.Column('user_a_liked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_b_liked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_match', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id_match_pair', name='pk_match_pairs'),
        sa.UniqueConstraint('user_a_id', 'user_b_id', 'mode', name='uq_match_pairs_pair_mode'),
        sa.CheckConstraint('user_a_id < user_b_id', name='ck_match_pairs_ordered_pair'),
        sa.CheckConstraint("mode IN ('dating', 'friends')", name='ck_match_pairs_mode'),
    )
    op.create_index('ix_match_pairs_id_match_pair', 'match_pairs', ['id_match_pair'])
    op.create_index('ix_match_pairs_user_a_id', 'match_pairs', ['user_a_id'])
    op.create_index('ix_match_pairs_user_b_id', 'match_pairs', ['user_b_id'])

    # One row per ordered (requester, addressee) pair, never deleted
    op.create_table(
        'friend_requests',
        sa.Column('id_friend_request', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('requester_id', sa.String(length=64), nullable=False),
        sa.Column('addressee_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id_friend_request', name='pk_friend_requests'),
        sa.UniqueConstraint('requester_id', 'addressee_id', name='uq_friend_requests_pair'),
        sa.CheckConstraint('requester_id <> addressee_id', name='ck_friend_requests_no_self_request'),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'blocked')",
            name='ck_friend_requests_status'
        ),
    )
    op.create_index('ix_friend_requests_id_friend_request', 'friend_requests', ['id_friend_request'])
    op.create_index('ix_friend_requests_requester_id', 'friend_requests', ['requester_id'])
    op.create_index('ix_friend_requests_addressee_id', 'friend_requests', ['addressee_id'])
    op.create_index('ix_friend_requests_status', 'friend_requests', ['status'])

    # Conversations opened by matches and accepted friendships
    op.create_table(
        'conversations',
        sa.Column('id_conversation', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('user_a_id', sa.String(length=64, collation='C'), nullable=False),
        sa.Column('user_b_id', sa.String(length=64, collation='C'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id_conversation', name='pk_conversations'),
        sa.UniqueConstraint('kind', 'user_a_id', 'user_b_id', name='uq_conversations_kind_pair'),
    )
    op.create_index('ix_conversations_id_conversation', 'conversations', ['id_conversation'])
    op.create_index('ix_conversations_user_a_id', 'conversations', ['user_a_id'])
    op.create_index('ix_conversations_user_b_id', 'conversations', ['user_b_id'])


def downgrade() -> None:
    op.drop_table('conversations')
    op.drop_table('friend_requests')
    op.drop_table('match_pairs')
    op.drop_table('swipes')
