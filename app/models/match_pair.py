# app/models/match_pair.py

from sqlalchemy import Column, Integer, String, DateTime, Boolean, CheckConstraint, UniqueConstraint
from datetime import datetime, UTC
from infrastructure.postgres_connection import Base

# Byte order on Postgres, the same order Python uses for str
PairUserId = String(64).with_variant(String(64, collation="C"), "postgresql")


class MatchPair(Base):
    """
    One row per unordered pair of users and mode.

    The pair is stored canonically with user_a_id < user_b_id, so (A, B) and
    (B, A) always address the same row. is_match flips to True exactly once,
    when both liked timestamps are set.
    """
    __tablename__ = "match_pairs"

    id_match_pair = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_a_id = Column(PairUserId, nullable=False, index=True)
    user_b_id = Column(PairUserId, nullable=False, index=True)
    mode = Column(String(20), nullable=False)
    user_a_liked_at = Column(DateTime(timezone=True), nullable=True)
    user_b_liked_at = Column(DateTime(timezone=True), nullable=True)
    is_match = Column(Boolean, default=False, nullable=False)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", "mode", name="uq_match_pairs_pair_mode"),
        CheckConstraint("user_a_id < user_b_id", name="ordered_pair"),
        CheckConstraint("mode IN ('dating', 'friends')", name="mode"),
    )

    def liked_at_field(self, user_id: str) -> str:
        """Name of the liked timestamp column owned by user_id"""
        if user_id == self.user_a_id:
            return "user_a_liked_at"
        if user_id == self.user_b_id:
            return "user_b_liked_at"
        raise ValueError(f"User {user_id} is not part of match pair {self.id_match_pair}")

    def other_user_id(self, user_id: str) -> str:
        return self.user_b_id if user_id == self.user_a_id else self.user_a_id

    def __repr__(self):
        return f"<MatchPair(id_match_pair={self.id_match_pair}, user_a={self.user_a_id}, user_b={self.user_b_id}, mode='{self.mode}', is_match={self.is_match})>"
