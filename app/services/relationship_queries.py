# app/services/relationship_queries.py

from typing import Any, Dict, List, Optional
from sqlalchemy import or_

from infrastructure.relationship_store import RelationshipStore
from models.friend_request import FriendRequest
from models.match_pair import MatchPair
from models.swipe import Swipe
from schemas.relationship_schema import (
    LIKE_DIRECTIONS,
    ConversationResponse,
    FriendRequestResponse,
    FriendRequestStatus,
    MatchResponse,
    SwipeMode
)
from services.conversation_service import ConversationService
from services.store_retry import RetryPolicy, run_with_retry
from services.validation import parse_enum


class RelationshipQueryService:
    """Read side of the relationship graph: friends, requests, matches, swipes and blocks"""

    def __init__(self, store: RelationshipStore, retry_policy: Optional[RetryPolicy] = None):
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

    async def _select(self, operation_name: str, model: Any, *criteria: Any, order_by: Any = None) -> List[Any]:
        async def read_once() -> List[Any]:
            async with self.store.transaction() as store:
                return await store.select(model, *criteria, order_by=order_by)

        return await run_with_retry(
            read_once,
            self.retry_policy,
            operation_name
        )

    async def list_friends(self, user_id: str) -> List[FriendRequestResponse]:
        """
        Accepted friendships of a user, one entry per friend

        Returns:
            Accepted requests in either direction, oldest first
        """
        requests = await self._select(
            "list_friends",
            FriendRequest,
            or_(FriendRequest.requester_id == user_id, FriendRequest.addressee_id == user_id),
            FriendRequest.status == FriendRequestStatus.ACCEPTED.value,
            order_by=FriendRequest.created_at
        )

        friends: Dict[str, FriendRequest] = {}
        for request in requests:
            friends.setdefault(request.other_user_id(user_id), request)
        return [FriendRequestResponse.model_validate(request) for request in friends.values()]

    async def list_pending_requests(self, user_id: str) -> List[FriendRequestResponse]:
        """Incoming friend requests still waiting for an answer"""
        requests = await self._select(
            "list_pending_requests",
            FriendRequest,
            FriendRequest.addressee_id == user_id,
            FriendRequest.status == FriendRequestStatus.PENDING.value,
            order_by=FriendRequest.created_at
        )
        return [FriendRequestResponse.model_validate(request) for request in requests]

    async def list_sent_requests(self, user_id: str) -> List[FriendRequestResponse]:
        """Outgoing friend requests still waiting for an answer"""
        requests = await self._select(
            "list_sent_requests",
            FriendRequest,
            FriendRequest.requester_id == user_id,
            FriendRequest.status == FriendRequestStatus.PENDING.value,
            order_by=FriendRequest.created_at
        )
        return [FriendRequestResponse.model_validate(request) for request in requests]

    async def list_matches(self, user_id: str, mode: Optional[SwipeMode] = None) -> List[MatchResponse]:
        """Mutual matches of a user, most recent match first"""
        criteria = [
            or_(MatchPair.user_a_id == user_id, MatchPair.user_b_id == user_id),
            MatchPair.is_match == True,
        ]
        if mode is not None:
            criteria.append(MatchPair.mode == parse_enum(SwipeMode, mode, "mode").value)

        pairs = await self._select(
            "list_matches", MatchPair, *criteria,
            order_by=(MatchPair.matched_at.desc(), MatchPair.id_match_pair.desc())
        )
        return [
            MatchResponse(
                id_match_pair=pair.id_match_pair,
                other_user_id=pair.other_user_id(user_id),
                mode=SwipeMode(pair.mode),
                matched_at=pair.matched_at
            )
            for pair in pairs
        ]

    async def list_swiped_user_ids(self, user_id: str, mode: Optional[SwipeMode] = None) -> List[str]:
        """Users this user already swiped on, used to avoid showing them again"""
        criteria = [Swipe.swiper_id == user_id]
        if mode is not None:
            criteria.append(Swipe.mode == parse_enum(SwipeMode, mode, "mode").value)

        swipes = await self._select("list_swiped_user_ids", Swipe, *criteria, order_by=Swipe.id_swipe)
        return list(dict.fromkeys(swipe.swiped_id for swipe in swipes))

    async def list_people_liked_me(self, user_id: str, mode: Optional[SwipeMode] = None) -> List[str]:
        """
        Users whose latest swipe on this user is a like and who were not swiped back yet

        A later swipe in the same mode supersedes an earlier one, so a like
        followed by a left swipe no longer counts.
        """
        criteria = [Swipe.swiped_id == user_id]
        if mode is not None:
            criteria.append(Swipe.mode == parse_enum(SwipeMode, mode, "mode").value)
        incoming = await self._select("list_people_liked_me", Swipe, *criteria, order_by=Swipe.id_swipe)

        latest_direction: Dict[tuple, str] = {}
        for swipe in incoming:
            latest_direction[(swipe.swiper_id, swipe.mode)] = swipe.direction

        already_swiped = set(await self.list_swiped_user_ids(user_id, mode))
        likes = [direction.value for direction in LIKE_DIRECTIONS]

        liked_me = [
            swiper_id
            for (swiper_id, _), direction in latest_direction.items()
            if direction in likes and swiper_id not in already_swiped
        ]
        return list(dict.fromkeys(liked_me))

    async def list_blocked_user_ids(self, user_id: str) -> List[str]:
        """Users blocked by this user"""
        rows = await self._select(
            "list_blocked_user_ids",
            FriendRequest,
            FriendRequest.requester_id == user_id,
            FriendRequest.status == FriendRequestStatus.BLOCKED.value,
            order_by=FriendRequest.updated_at
        )
        return [row.addressee_id for row in rows]

    async def list_blocked_exclusion_ids(self, user_id: str) -> List[str]:
        """Users to hide from discover and messages: blocked by this user or blocking them"""
        rows = await self._select(
            "list_blocked_exclusion_ids",
            FriendRequest,
            FriendRequest.status == FriendRequestStatus.BLOCKED.value,
            or_(FriendRequest.requester_id == user_id, FriendRequest.addressee_id == user_id),
            order_by=FriendRequest.id_friend_request
        )
        return list(dict.fromkeys(row.other_user_id(user_id) for row in rows))

    async def list_conversations(self, user_id: str, kind: Optional[SwipeMode] = None) -> List[ConversationResponse]:
        """Conversations opened for this user by matches and friendships, newest first"""
        kind_value = parse_enum(SwipeMode, kind, "kind").value if kind is not None else None

        async def read_once() -> List[Any]:
            async with self.store.transaction() as store:
                return await ConversationService.list_for_user(store, user_id, kind_value)

        conversations = await run_with_retry(
            read_once,
            self.retry_policy,
            "list_conversations"
        )
        return [ConversationResponse.model_validate(conversation) for conversation in conversations]
