# app/models/conversation.py

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from datetime import datetime, UTC
from infrastructure.postgres_connection import Base
from models.match_pair import PairUserId


class Conversation(Base):
    """Conversation opened by a new match or an accepted friendship"""
    __tablename__ = "conversations"

    id_conversation = Column(Integer, primary_key=True, index=True, autoincrement=True)
    kind = Column(String(20), nullable=False)
    user_a_id = Column(PairUserId, nullable=False, index=True)
    user_b_id = Column(PairUserId, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("kind", "user_a_id", "user_b_id", name="uq_conversations_kind_pair"),
    )

    def __repr__(self):
        return f"<Conversation(id_conversation={self.id_conversation}, kind='{self.kind}', user_a={self.user_a_id}, user_b={self.user_b_id})>"
