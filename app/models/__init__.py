# app/models/__init__.py

from models.swipe import Swipe
from models.match_pair import MatchPair
from models.friend_request import FriendRequest
from models.conversation import Conversation

__all__ = ["Swipe", "MatchPair", "FriendRequest", "Conversation"]
