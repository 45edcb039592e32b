# app/models/swipe.py

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, Index
from datetime import datetime, UTC
from infrastructure.postgres_connection import Base


class Swipe(Base):
    """Append-only log of swipes, one row per swipe action"""
    __tablename__ = "swipes"

    id_swipe = Column(Integer, primary_key=True, index=True, autoincrement=True)
    swiper_id = Column(String(64), nullable=False, index=True)
    swiped_id = Column(String(64), nullable=False, index=True)
    direction = Column(String(10), nullable=False)
    mode = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        CheckConstraint("swiper_id <> swiped_id", name="no_self_swipe"),
        CheckConstraint("direction IN ('left', 'right', 'up')", name="direction"),
        CheckConstraint("mode IN ('dating', 'friends')", name="mode"),
        Index("ix_swipes_swiped_mode", "swiped_id", "mode"),
    )

    def __repr__(self):
        return f"<Swipe(id_swipe={self.id_swipe}, swiper={self.swiper_id}, swiped={self.swiped_id}, direction='{self.direction}', mode='{self.mode}')>"
