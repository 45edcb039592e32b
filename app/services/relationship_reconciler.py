# app/services/relationship_reconciler.py

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from exceptions.domain_exceptions import (
    ForbiddenException,
    InvalidArgumentException,
    InvalidStateTransitionException,
    NotFoundException
)
from infrastructure.relationship_store import RelationshipStore
from models.conversation import Conversation
from models.friend_request import FriendRequest
from models.match_pair import MatchPair
from models.swipe import Swipe
from schemas.event_schema import (
    FriendRequestReceivedEvent,
    FriendshipEstablishedEvent,
    MatchCreatedEvent,
    RelationshipEvent
)
from schemas.relationship_schema import (
    LIKE_DIRECTIONS,
    FriendRequestResult,
    FriendRequestStatus,
    SwipeDirection,
    SwipeMode,
    SwipeResult
)
from services.conversation_service import ConversationService
from services.pair_key import canonical_pair
from services.relationship_events import EventPublisher
from services.store_retry import RetryPolicy, run_with_retry
from services.validation import parse_enum, require_user_id

logger = logging.getLogger(__name__)

PENDING = FriendRequestStatus.PENDING.value
ACCEPTED = FriendRequestStatus.ACCEPTED.value
DECLINED = FriendRequestStatus.DECLINED.value
BLOCKED = FriendRequestStatus.BLOCKED.value


@dataclass
class _SwipeOutcome:
    match_pair: Optional[MatchPair] = None
    new_match: bool = False
    conversation: Optional[Conversation] = None


@dataclass
class _FriendRequestOutcome:
    request: FriendRequest
    new_friendship: bool = False
    conversation: Optional[Conversation] = None
    events: List[RelationshipEvent] = field(default_factory=list)


class RelationshipReconciler:
    """
    Decides the relationship state between two users for every swipe and
    friend-request action.

    Holds no shared mutable state: every operation is one store transaction
    whose races are settled by the store's unique constraints and
    compare-and-set updates. One-time effects (conversation, events) belong
    to the call that won the state transition, events are only published
    after that call's transaction committed.
    """

    def __init__(
        self,
        store: RelationshipStore,
        publisher: EventPublisher,
        retry_policy: Optional[RetryPolicy] = None
    ):
        self.store = store
        self.publisher = publisher
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

    # Swipes & matches

    async def record_swipe(
        self,
        swiper_id: str,
        swiped_id: str,
        direction: Any,
        mode: Any = SwipeMode.DATING
    ) -> SwipeResult:
        """
        Record a swipe and reconcile the match pair it concerns

        Args:
            swiper_id: User who swiped
            swiped_id: User being swiped on
            direction: 'left', 'right' or 'up' (super like)
            mode: 'dating' or 'friends', pairs are tracked per mode

        Returns:
            SwipeResult with matched=True only if this call created the match

        Raises:
            InvalidArgumentException: Self swipe or unknown direction/mode
            StorageUnavailableException: Store kept failing after retries
        """
        require_user_id(swiper_id, "swiper_id")
        require_user_id(swiped_id, "swiped_id")
        if swiper_id == swiped_id:
            raise InvalidArgumentException(
                message="Cannot swipe on yourself",
                details={"user_id": swiper_id}
            )
        direction = parse_enum(SwipeDirection, direction, "direction")
        mode = parse_enum(SwipeMode, mode, "mode")

        outcome = await run_with_retry(
            lambda: self._record_swipe_once(swiper_id, swiped_id, direction, mode),
            self.retry_policy,
            "record_swipe"
        )

        match_id = outcome.match_pair.id_match_pair if outcome.match_pair else None
        if not outcome.new_match:
            return SwipeResult(matched=False, match_id=match_id)

        conversation_id = outcome.conversation.id_conversation
        logger.info(f"New {mode.value} match {match_id} between {swiper_id} and {swiped_id}")
        await self._emit([
            MatchCreatedEvent(
                recipient_id=user_id,
                match_id=match_id,
                other_user_id=other_id,
                mode=mode.value,
                conversation_id=conversation_id
            )
            for user_id, other_id in ((swiper_id, swiped_id), (swiped_id, swiper_id))
        ])
        return SwipeResult(matched=True, match_id=match_id, conversation_id=conversation_id)

    async def _record_swipe_once(
        self,
        swiper_id: str,
        swiped_id: str,
        direction: SwipeDirection,
        mode: SwipeMode
    ) -> _SwipeOutcome:
        now = datetime.now(UTC)
        async with self.store.transaction() as store:
            await store.insert(Swipe, {
                "swiper_id": swiper_id,
                "swiped_id": swiped_id,
                "direction": direction.value,
                "mode": mode.value,
                "created_at": now,
            })
            if direction not in LIKE_DIRECTIONS:
                return _SwipeOutcome()

            user_a, user_b = canonical_pair(swiper_id, swiped_id)
            key = {"user_a_id": user_a, "user_b_id": user_b, "mode": mode.value}
            pair, _ = await store.upsert_if_absent(
                MatchPair, key, {"is_match": False, "created_at": now}
            )

            liked_field = pair.liked_at_field(swiper_id)
            if getattr(pair, liked_field) is None:
                # Only the first like of this side is kept, the CAS re-checks it
                pair, _ = await store.conditional_update(
                    MatchPair, key, {liked_field: None}, {liked_field: now}
                )

            if pair.is_match or pair.user_a_liked_at is None or pair.user_b_liked_at is None:
                return _SwipeOutcome(match_pair=pair)

            pair, applied = await store.conditional_update(
                MatchPair, key, {"is_match": False}, {"is_match": True, "matched_at": now}
            )
            if not applied:
                return _SwipeOutcome(match_pair=pair)

            conversation = await ConversationService.fetch_or_create(
                store, mode.value, swiper_id, swiped_id
            )
            return _SwipeOutcome(match_pair=pair, new_match=True, conversation=conversation)

    # Friend requests

    async def send_friend_request(self, requester_id: str, addressee_id: str) -> FriendRequestResult:
        """
        Send a friend request, or accept the pending one coming the other way

        Args:
            requester_id: User sending the request
            addressee_id: User receiving the request

        Returns:
            FriendRequestResult with status 'pending' or 'accepted'

        Raises:
            InvalidArgumentException: If users are the same
            InvalidStateTransitionException: If the pair is blocked or the request was declined
            StorageUnavailableException: Store kept failing after retries
        """
        require_user_id(requester_id, "requester_id")
        require_user_id(addressee_id, "addressee_id")
        if requester_id == addressee_id:
            raise InvalidArgumentException(
                message="Cannot send friend request to yourself",
                details={"user_id": requester_id}
            )

        outcome = await run_with_retry(
            lambda: self._send_friend_request_once(requester_id, addressee_id),
            self.retry_policy,
            "send_friend_request"
        )
        return await self._finish_friend_request(outcome)

    async def _send_friend_request_once(
        self,
        requester_id: str,
        addressee_id: str
    ) -> _FriendRequestOutcome:
        now = datetime.now(UTC)
        async with self.store.transaction() as store:
            reverse_key = {"requester_id": addressee_id, "addressee_id": requester_id}
            reverse = await store.get(FriendRequest, reverse_key)

            if reverse is not None and reverse.status == PENDING:
                reverse, applied = await store.conditional_update(
                    FriendRequest, reverse_key, {"status": PENDING}, {"status": ACCEPTED, "updated_at": now}
                )
                if applied:
                    forward_key = {"requester_id": requester_id, "addressee_id": addressee_id}
                    await self._settle_pending(store, forward_key, now)
                    conversation = await ConversationService.fetch_or_create(
                        store, SwipeMode.FRIENDS.value, requester_id, addressee_id
                    )
                    return _FriendRequestOutcome(reverse, new_friendship=True, conversation=conversation)

            if reverse is not None and reverse.status == ACCEPTED:
                return _FriendRequestOutcome(reverse)
            if reverse is not None and reverse.status == BLOCKED:
                raise InvalidStateTransitionException(
                    message="Friend request cannot be sent to this user",
                    details={"request_id": reverse.id_friend_request, "current_status": reverse.status}
                )

            forward_key = {"requester_id": requester_id, "addressee_id": addressee_id}
            forward, created = await store.upsert_if_absent(
                FriendRequest, forward_key, {"status": PENDING, "created_at": now, "updated_at": now}
            )
            if created:
                return _FriendRequestOutcome(forward, events=[
                    FriendRequestReceivedEvent(
                        recipient_id=addressee_id,
                        request_id=forward.id_friend_request,
                        requester_id=requester_id
                    )
                ])
            if forward.status in (DECLINED, BLOCKED):
                raise InvalidStateTransitionException(
                    message=f"Friend request was already {forward.status}",
                    details={"request_id": forward.id_friend_request, "current_status": forward.status}
                )
            # Repeated send while pending, or already friends: nothing to do
            return _FriendRequestOutcome(forward)

    async def respond_to_friend_request(
        self,
        request_id: int,
        accept: bool,
        responder_id: Optional[str] = None
    ) -> FriendRequestResult:
        """
        Accept or decline a pending friend request

        Args:
            request_id: ID of the friend request
            accept: True to accept, False to decline
            responder_id: Optional acting user, must be the addressee when given

        Returns:
            FriendRequestResult with status 'accepted' or 'declined'

        Raises:
            InvalidArgumentException: Malformed request id or answer
            NotFoundException: If the request does not exist
            ForbiddenException: If responder is not the addressee
            InvalidStateTransitionException: If the request is not pending
            StorageUnavailableException: Store kept failing after retries
        """
        if isinstance(request_id, bool) or not isinstance(request_id, int):
            raise InvalidArgumentException(
                message="Friend request id must be an integer",
                details={"request_id": request_id}
            )
        if not isinstance(accept, bool):
            raise InvalidArgumentException(
                message="Answer must be a boolean",
                details={"accept": accept}
            )

        outcome = await run_with_retry(
            lambda: self._respond_once(request_id, accept, responder_id),
            self.retry_policy,
            "respond_to_friend_request"
        )
        return await self._finish_friend_request(outcome)

    async def _respond_once(
        self,
        request_id: int,
        accept: bool,
        responder_id: Optional[str]
    ) -> _FriendRequestOutcome:
        now = datetime.now(UTC)
        key = {"id_friend_request": request_id}
        async with self.store.transaction() as store:
            request = await store.get(FriendRequest, key)
            if request is None:
                raise NotFoundException(
                    message="Friend request not found",
                    details={"request_id": request_id}
                )
            if responder_id is not None and responder_id != request.addressee_id:
                raise ForbiddenException(
                    message="Only the addressee can respond to a friend request",
                    details={"request_id": request_id}
                )
            if request.status != PENDING:
                raise InvalidStateTransitionException(
                    message="Friend request is not pending",
                    details={"request_id": request_id, "current_status": request.status}
                )

            new_status = ACCEPTED if accept else DECLINED
            request, applied = await store.conditional_update(
                FriendRequest, key, {"status": PENDING}, {"status": new_status, "updated_at": now}
            )
            if not applied:
                raise InvalidStateTransitionException(
                    message="Friend request is not pending",
                    details={"request_id": request_id, "current_status": request.status}
                )

            if not accept:
                return _FriendRequestOutcome(request)

            # Opposite requests sent at the same time leave two rows for one pair
            reverse_key = {"requester_id": request.addressee_id, "addressee_id": request.requester_id}
            reverse = await store.get(FriendRequest, reverse_key)
            if reverse is not None and reverse.status == ACCEPTED:
                logger.info(f"Users {request.requester_id} and {request.addressee_id} are already friends")
                return _FriendRequestOutcome(request)
            if reverse is not None and reverse.status == PENDING:
                await self._settle_pending(store, reverse_key, now)

            conversation = await ConversationService.fetch_or_create(
                store, SwipeMode.FRIENDS.value, request.requester_id, request.addressee_id
            )
            return _FriendRequestOutcome(request, new_friendship=True, conversation=conversation)

    async def block_user(self, blocker_id: str, blocked_id: str) -> FriendRequestResult:
        """
        Block a user: pending requests between the two become blocked and the
        blocker gets a blocked row towards the other user

        Raises:
            InvalidArgumentException: If users are the same
            InvalidStateTransitionException: If the blocker's own request was already answered
            StorageUnavailableException: Store kept failing after retries
        """
        require_user_id(blocker_id, "blocker_id")
        require_user_id(blocked_id, "blocked_id")
        if blocker_id == blocked_id:
            raise InvalidArgumentException(
                message="Cannot block yourself",
                details={"user_id": blocker_id}
            )

        outcome = await run_with_retry(
            lambda: self._block_once(blocker_id, blocked_id),
            self.retry_policy,
            "block_user"
        )
        logger.info(f"User {blocker_id} blocked {blocked_id}")
        return await self._finish_friend_request(outcome)

    async def _block_once(self, blocker_id: str, blocked_id: str) -> _FriendRequestOutcome:
        now = datetime.now(UTC)
        blocked_fields = {"status": BLOCKED, "updated_at": now}
        async with self.store.transaction() as store:
            reverse_key = {"requester_id": blocked_id, "addressee_id": blocker_id}
            reverse = await store.get(FriendRequest, reverse_key)
            if reverse is not None and reverse.status == PENDING:
                await store.conditional_update(FriendRequest, reverse_key, {"status": PENDING}, blocked_fields)

            forward_key = {"requester_id": blocker_id, "addressee_id": blocked_id}
            forward, _ = await store.upsert_if_absent(
                FriendRequest, forward_key, {"status": BLOCKED, "created_at": now, "updated_at": now}
            )
            if forward.status == PENDING:
                forward, _ = await store.conditional_update(
                    FriendRequest, forward_key, {"status": PENDING}, blocked_fields
                )
            if forward.status != BLOCKED:
                raise InvalidStateTransitionException(
                    message=f"Friend request was already {forward.status}",
                    details={"request_id": forward.id_friend_request, "current_status": forward.status}
                )
            return _FriendRequestOutcome(forward)

    @staticmethod
    async def _settle_pending(store: RelationshipStore, key: Dict[str, Any], now: datetime) -> None:
        """Mark a leftover pending row of an established friendship as accepted, without effects"""
        await store.conditional_update(
            FriendRequest, key, {"status": PENDING}, {"status": ACCEPTED, "updated_at": now}
        )

    async def _finish_friend_request(self, outcome: _FriendRequestOutcome) -> FriendRequestResult:
        request = outcome.request
        conversation_id = outcome.conversation.id_conversation if outcome.conversation else None
        events = list(outcome.events)

        if outcome.new_friendship:
            logger.info(f"Friendship established between {request.requester_id} and {request.addressee_id}")
            events.extend(
                FriendshipEstablishedEvent(
                    recipient_id=user_id,
                    request_id=request.id_friend_request,
                    friend_id=request.other_user_id(user_id),
                    conversation_id=conversation_id
                )
                for user_id in (request.requester_id, request.addressee_id)
            )

        await self._emit(events)
        return FriendRequestResult(
            status=FriendRequestStatus(request.status),
            request_id=request.id_friend_request,
            conversation_id=conversation_id
        )

    async def _emit(self, events: List[RelationshipEvent]) -> None:
        """Publish committed effects; a delivery failure never undoes state"""
        for event in events:
            try:
                await self.publisher.publish(event)
            except Exception as e:
                logger.error(f"Error publishing {event.event} to user {event.recipient_id}: {e}")
