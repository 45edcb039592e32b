# app/models/friend_request.py

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, UniqueConstraint
from datetime import datetime, UTC
from infrastructure.postgres_connection import Base


class FriendRequest(Base):
    """Friend request between two users, one row per ordered (requester, addressee) pair"""
    __tablename__ = "friend_requests"

    id_friend_request = Column(Integer, primary_key=True, index=True, autoincrement=True)
    requester_id = Column(String(64), nullable=False, index=True)
    addressee_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friend_requests_pair"),
        CheckConstraint("requester_id <> addressee_id", name="no_self_request"),
        CheckConstraint("status IN ('pending', 'accepted', 'declined', 'blocked')", name="status"),
    )

    def other_user_id(self, user_id: str) -> str:
        return self.addressee_id if user_id == self.requester_id else self.requester_id

    def __repr__(self):
        return f"<FriendRequest(id_friend_request={self.id_friend_request}, requester={self.requester_id}, addressee={self.addressee_id}, status='{self.status}')>"
