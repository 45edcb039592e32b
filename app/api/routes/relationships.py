# app/api/routes/relationships.py

from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from api.dependencies import (
    current_user_id,
    get_publisher,
    get_query_service,
    get_reconciler
)
from schemas.relationship_schema import (
    ConversationResponse,
    FriendRequestCreate,
    FriendRequestRespond,
    FriendRequestResponse,
    FriendRequestResult,
    MatchResponse,
    SwipeCreate,
    SwipeMode,
    SwipeResult,
    UserIdListResponse
)
from services.relationship_events import RedisEventPublisher
from services.relationship_queries import RelationshipQueryService
from services.relationship_reconciler import RelationshipReconciler


# Create router
relationships_router = APIRouter(tags=["Relationships"])


@relationships_router.post("/swipes", response_model=SwipeResult, status_code=status.HTTP_201_CREATED)
async def record_swipe(
    swipe_data: SwipeCreate,
    user_id: str = Depends(current_user_id),
    reconciler: RelationshipReconciler = Depends(get_reconciler),
):
    """
    Swipe on another user's profile.

    - **swiped_user_id**: User being swiped on
    - **direction**: 'left', 'right' or 'up' (super like)
    - **mode**: 'dating' (default) or 'friends'

    `matched` is true only for the swipe that completed a mutual like.
    """
    return await reconciler.record_swipe(
        swiper_id=user_id,
        swiped_id=swipe_data.swiped_user_id,
        direction=swipe_data.direction,
        mode=swipe_data.mode
    )


@relationships_router.get("/swipes/ids", response_model=UserIdListResponse)
async def get_swiped_user_ids(
    mode: Optional[SwipeMode] = Query(None, description="Filter by mode: 'dating' or 'friends'"),
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Users the current user already swiped on."""
    return UserIdListResponse(user_ids=await queries.list_swiped_user_ids(user_id, mode))


@relationships_router.get("/likes", response_model=UserIdListResponse)
async def get_people_liked_me(
    mode: Optional[SwipeMode] = Query(None, description="Filter by mode: 'dating' or 'friends'"),
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Users who liked the current user and have not been swiped back yet."""
    return UserIdListResponse(user_ids=await queries.list_people_liked_me(user_id, mode))


@relationships_router.get("/matches", response_model=list[MatchResponse])
async def get_my_matches(
    mode: Optional[SwipeMode] = Query(None, description="Filter by mode: 'dating' or 'friends'"),
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Mutual matches of the current user, most recent first."""
    return await queries.list_matches(user_id, mode)


@relationships_router.post("/friends/request", response_model=FriendRequestResult, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request_data: FriendRequestCreate,
    user_id: str = Depends(current_user_id),
    reconciler: RelationshipReconciler = Depends(get_reconciler),
):
    """
    Send a friend request to another user.

    - **user_id**: User to send the friend request to

    If that user already sent a pending request to you, it is accepted
    instead and the status is 'accepted'.
    """
    return await reconciler.send_friend_request(
        requester_id=user_id,
        addressee_id=request_data.user_id
    )


@relationships_router.post("/friends/{request_id}/respond", response_model=FriendRequestResult)
async def respond_to_friend_request(
    request_id: int,
    answer: FriendRequestRespond,
    user_id: str = Depends(current_user_id),
    reconciler: RelationshipReconciler = Depends(get_reconciler),
):
    """
    Accept or decline a pending friend request.

    Only the addressee of the request can answer it, and only once.
    """
    return await reconciler.respond_to_friend_request(
        request_id=request_id,
        accept=answer.accept,
        responder_id=user_id
    )


@relationships_router.post("/friends/block", response_model=FriendRequestResult)
async def block_user(
    request_data: FriendRequestCreate,
    user_id: str = Depends(current_user_id),
    reconciler: RelationshipReconciler = Depends(get_reconciler),
):
    """Block another user, pending requests between you become blocked."""
    return await reconciler.block_user(blocker_id=user_id, blocked_id=request_data.user_id)


@relationships_router.get("/friends", response_model=list[FriendRequestResponse])
async def get_my_friends(
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Accepted friendships of the current user."""
    return await queries.list_friends(user_id)


@relationships_router.get("/friends/pending", response_model=list[FriendRequestResponse])
async def get_pending_requests(
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Incoming friend requests waiting for an answer."""
    return await queries.list_pending_requests(user_id)


@relationships_router.get("/friends/sent", response_model=list[FriendRequestResponse])
async def get_sent_requests(
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Outgoing friend requests waiting for an answer."""
    return await queries.list_sent_requests(user_id)


@relationships_router.get("/friends/blocked", response_model=UserIdListResponse)
async def get_blocked_users(
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Users blocked by the current user."""
    return UserIdListResponse(user_ids=await queries.list_blocked_user_ids(user_id))


@relationships_router.get("/friends/excluded", response_model=UserIdListResponse)
async def get_excluded_users(
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Users hidden from discover and messages: blocked by you or blocking you."""
    return UserIdListResponse(user_ids=await queries.list_blocked_exclusion_ids(user_id))


@relationships_router.get("/conversations", response_model=list[ConversationResponse])
async def get_my_conversations(
    kind: Optional[SwipeMode] = Query(None, description="Filter by kind: 'dating' or 'friends'"),
    user_id: str = Depends(current_user_id),
    queries: RelationshipQueryService = Depends(get_query_service),
):
    """Conversations opened by your matches and friendships, newest first."""
    return await queries.list_conversations(user_id, kind)


@relationships_router.get("/notifications")
async def get_notifications(
    limit: int = Query(20, ge=1, le=100, description="Number of events to return"),
    user_id: str = Depends(current_user_id),
    publisher: RedisEventPublisher = Depends(get_publisher),
):
    """Most recent relationship events addressed to the current user, newest first."""
    return {"events": await publisher.recent_events(user_id, limit)}
