# app/schemas/relationship_schema.py

from enum import Enum
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class SwipeDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"  # super like


class SwipeMode(str, Enum):
    DATING = "dating"
    FRIENDS = "friends"


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BLOCKED = "blocked"


LIKE_DIRECTIONS = (SwipeDirection.RIGHT, SwipeDirection.UP)


class SwipeCreate(BaseModel):
    """Schema for recording a swipe"""
    swiped_user_id: str
    direction: str
    mode: str = SwipeMode.DATING.value


class SwipeResult(BaseModel):
    """Result of a swipe; matched is True only for the call that created the match"""
    matched: bool
    match_id: Optional[int] = None
    conversation_id: Optional[int] = None


class FriendRequestCreate(BaseModel):
    """Schema for sending a friend request or blocking a user"""
    user_id: str


class FriendRequestRespond(BaseModel):
    """Schema for answering a pending friend request"""
    accept: bool


class FriendRequestResult(BaseModel):
    """Resulting status of a friend request action"""
    status: FriendRequestStatus
    request_id: Optional[int] = None
    conversation_id: Optional[int] = None


class FriendRequestResponse(BaseModel):
    """Schema for a friend request row"""
    id_friend_request: int
    requester_id: str
    addressee_id: str
    status: FriendRequestStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MatchResponse(BaseModel):
    """Schema for a mutual match as seen by one of its users"""
    id_match_pair: int
    other_user_id: str
    mode: SwipeMode
    matched_at: Optional[datetime]


class UserIdListResponse(BaseModel):
    """Plain list of user ids"""
    user_ids: list[str]


class ConversationResponse(BaseModel):
    """Schema for a conversation opened by a match or friendship"""
    id_conversation: int
    kind: SwipeMode
    user_a_id: str
    user_b_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
