# app/schemas/event_schema.py

from datetime import datetime, UTC
from typing import Literal, Optional
from pydantic import BaseModel, Field


class RelationshipEvent(BaseModel):
    """Base for events fanned out to one user"""
    recipient_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MatchCreatedEvent(RelationshipEvent):
    event: Literal["match_created"] = "match_created"
    match_id: int
    other_user_id: str
    mode: str
    conversation_id: Optional[int] = None


class FriendshipEstablishedEvent(RelationshipEvent):
    event: Literal["friendship_established"] = "friendship_established"
    request_id: int
    friend_id: str
    conversation_id: Optional[int] = None


class FriendRequestReceivedEvent(RelationshipEvent):
    event: Literal["friend_request_received"] = "friend_request_received"
    request_id: int
    requester_id: str
