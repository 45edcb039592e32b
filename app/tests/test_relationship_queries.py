"""
Unit tests for RelationshipQueryService

Tests cover:
- Friends, incoming and outgoing requests
- Matches per mode
- Swiped users and people who liked the user
- Blocked users and discover exclusions
- Conversations
- Retried reads, one transaction per attempt
"""
import pytest
from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession
from infrastructure.relationship_store import SqlAlchemyRelationshipStore, TransientStoreError
from schemas.relationship_schema import FriendRequestStatus, SwipeMode
from services.relationship_queries import RelationshipQueryService
from services.relationship_reconciler import RelationshipReconciler
from exceptions.domain_exceptions import InvalidArgumentException
from test_helpers import ALICE, BOB, CAROL, NO_WAIT_RETRIES


class FlakyReadStore(SqlAlchemyRelationshipStore):
    """Fails the first `failures` selects with a transient error and counts transactions"""

    def __init__(self, session: AsyncSession, failures: int):
        super().__init__(session)
        self.failures = failures
        self.select_calls = 0
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        async with super().transaction() as store:
            yield store

    async def select(self, model, *criteria, order_by=None):
        self.select_calls += 1
        if self.select_calls <= self.failures:
            raise TransientStoreError("connection reset by peer")
        return await super().select(model, *criteria, order_by=order_by)


@pytest.mark.unit
class TestFriendQueries:
    """Test cases for friend and request listings"""

    async def test_list_friends_in_both_directions(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that accepted requests count for both users"""
        sent = await reconciler.send_friend_request(ALICE, BOB)
        await reconciler.respond_to_friend_request(sent.request_id, accept=True)
        await reconciler.send_friend_request(CAROL, ALICE)
        await reconciler.send_friend_request(ALICE, CAROL)

        alice_friends = await queries.list_friends(ALICE)
        bob_friends = await queries.list_friends(BOB)

        assert {f.requester_id for f in alice_friends} == {ALICE, CAROL}
        assert all(f.status == FriendRequestStatus.ACCEPTED for f in alice_friends)
        assert len(bob_friends) == 1
        assert bob_friends[0].id_friend_request == sent.request_id

    async def test_list_friends_excludes_other_statuses(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that pending, declined and blocked rows are not friendships"""
        await reconciler.send_friend_request(ALICE, BOB)
        declined = await reconciler.send_friend_request(CAROL, ALICE)
        await reconciler.respond_to_friend_request(declined.request_id, accept=False)

        assert await queries.list_friends(ALICE) == []

        await reconciler.block_user(BOB, ALICE)
        assert await queries.list_friends(BOB) == []

    async def test_pending_and_sent_requests(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test incoming and outgoing pending requests"""
        await reconciler.send_friend_request(ALICE, BOB)
        await reconciler.send_friend_request(CAROL, BOB)

        pending = await queries.list_pending_requests(BOB)
        sent = await queries.list_sent_requests(ALICE)

        assert [r.requester_id for r in pending] == [ALICE, CAROL]
        assert [r.addressee_id for r in sent] == [BOB]
        assert await queries.list_pending_requests(ALICE) == []
        assert await queries.list_sent_requests(BOB) == []

    async def test_answered_requests_leave_pending_lists(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that accepting removes the request from both pending lists"""
        sent = await reconciler.send_friend_request(ALICE, BOB)
        await reconciler.respond_to_friend_request(sent.request_id, accept=True)

        assert await queries.list_pending_requests(BOB) == []
        assert await queries.list_sent_requests(ALICE) == []


@pytest.mark.unit
class TestMatchQueries:
    """Test cases for list_matches"""

    async def test_list_matches(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that only mutual likes are listed, newest first"""
        await reconciler.record_swipe(ALICE, BOB, "right")
        await reconciler.record_swipe(BOB, ALICE, "right")
        await reconciler.record_swipe(CAROL, ALICE, "right")
        await reconciler.record_swipe(ALICE, CAROL, "up", mode="friends")
        await reconciler.record_swipe(CAROL, ALICE, "right", mode="friends")

        matches = await queries.list_matches(ALICE)

        assert [(m.other_user_id, m.mode) for m in matches] == [
            (CAROL, SwipeMode.FRIENDS),
            (BOB, SwipeMode.DATING),
        ]
        assert all(m.matched_at is not None for m in matches)

    async def test_list_matches_by_mode(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test filtering matches by mode"""
        await reconciler.record_swipe(ALICE, BOB, "right")
        await reconciler.record_swipe(BOB, ALICE, "right")

        assert [m.other_user_id for m in await queries.list_matches(BOB, "dating")] == [ALICE]
        assert await queries.list_matches(BOB, SwipeMode.FRIENDS) == []

    async def test_list_matches_rejects_unknown_mode(self, queries: RelationshipQueryService):
        """Test that the mode filter is validated"""
        with pytest.raises(InvalidArgumentException):
            await queries.list_matches(ALICE, "networking")


@pytest.mark.unit
class TestSwipeQueries:
    """Test cases for swipe based listings"""

    async def test_list_swiped_user_ids(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that every swiped user is listed once, in swipe order"""
        await reconciler.record_swipe(ALICE, CAROL, "left")
        await reconciler.record_swipe(ALICE, BOB, "right")
        await reconciler.record_swipe(ALICE, CAROL, "right", mode="friends")

        assert await queries.list_swiped_user_ids(ALICE) == [CAROL, BOB]
        assert await queries.list_swiped_user_ids(ALICE, "friends") == [CAROL]
        assert await queries.list_swiped_user_ids(BOB) == []

    async def test_people_liked_me(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that pending incoming likes are listed"""
        await reconciler.record_swipe(BOB, ALICE, "right")
        await reconciler.record_swipe(CAROL, ALICE, "up")

        assert await queries.list_people_liked_me(ALICE) == [BOB, CAROL]

    async def test_people_liked_me_skips_answered_and_withdrawn(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that swiped-back users and superseded likes are not listed"""
        await reconciler.record_swipe(BOB, ALICE, "right")
        await reconciler.record_swipe(CAROL, ALICE, "right")
        await reconciler.record_swipe(ALICE, BOB, "left")
        await reconciler.record_swipe(CAROL, ALICE, "left")

        assert await queries.list_people_liked_me(ALICE) == []

    async def test_people_liked_me_by_mode(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that likes are listed per mode"""
        await reconciler.record_swipe(BOB, ALICE, "right", mode="friends")

        assert await queries.list_people_liked_me(ALICE, "friends") == [BOB]
        assert await queries.list_people_liked_me(ALICE, "dating") == []


@pytest.mark.unit
class TestBlockQueries:
    """Test cases for blocked user listings"""

    async def test_list_blocked_user_ids(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that a user sees who they blocked"""
        await reconciler.block_user(ALICE, BOB)
        await reconciler.block_user(ALICE, CAROL)

        assert await queries.list_blocked_user_ids(ALICE) == [BOB, CAROL]
        assert await queries.list_blocked_user_ids(BOB) == []

    async def test_exclusions_cover_both_sides(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that blocked and blocking users are both excluded"""
        await reconciler.block_user(ALICE, BOB)
        await reconciler.block_user(CAROL, ALICE)

        assert sorted(await queries.list_blocked_exclusion_ids(ALICE)) == [BOB, CAROL]
        assert await queries.list_blocked_exclusion_ids(BOB) == [ALICE]

    async def test_exclusions_are_deduplicated(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that mutual blocks list the other user once"""
        await reconciler.block_user(ALICE, BOB)
        await reconciler.block_user(BOB, ALICE)

        assert await queries.list_blocked_exclusion_ids(ALICE) == [BOB]


@pytest.mark.unit
class TestConversationQueries:
    """Test cases for list_conversations"""

    async def test_list_conversations(
        self,
        reconciler: RelationshipReconciler,
        queries: RelationshipQueryService
    ):
        """Test that matches and friendships both open conversations"""
        await reconciler.record_swipe(ALICE, BOB, "right")
        await reconciler.record_swipe(BOB, ALICE, "right")
        sent = await reconciler.send_friend_request(CAROL, ALICE)
        await reconciler.respond_to_friend_request(sent.request_id, accept=True)

        conversations = await queries.list_conversations(ALICE)
        friends_only = await queries.list_conversations(ALICE, "friends")

        assert [(c.kind, c.user_b_id) for c in conversations] == [
            (SwipeMode.FRIENDS, CAROL),
            (SwipeMode.DATING, BOB),
        ]
        assert [c.user_b_id for c in friends_only] == [CAROL]
        assert await queries.list_conversations(BOB, SwipeMode.FRIENDS) == []


@pytest.mark.unit
class TestRetriedReads:
    """Test cases for reads retried after transient store failures"""

    async def test_each_attempt_runs_in_its_own_transaction(
        self,
        db_session: AsyncSession,
        reconciler: RelationshipReconciler
    ):
        """Test that a failed read is rolled back before the retry"""
        await reconciler.send_friend_request(ALICE, BOB)
        store = FlakyReadStore(db_session, failures=1)
        queries = RelationshipQueryService(store, retry_policy=NO_WAIT_RETRIES)

        pending = await queries.list_pending_requests(BOB)

        assert [r.requester_id for r in pending] == [ALICE]
        assert store.select_calls == 2
        assert store.transactions == 2
        assert not db_session.in_transaction()

    async def test_conversations_read_is_retried(
        self,
        db_session: AsyncSession,
        reconciler: RelationshipReconciler
    ):
        """Test that listing conversations survives a transient failure"""
        await reconciler.record_swipe(ALICE, BOB, "right")
        await reconciler.record_swipe(BOB, ALICE, "right")
        store = FlakyReadStore(db_session, failures=2)
        queries = RelationshipQueryService(store, retry_policy=NO_WAIT_RETRIES)

        conversations = await queries.list_conversations(ALICE)

        assert [c.user_b_id for c in conversations] == [BOB]
        assert store.transactions == 3
        assert not db_session.in_transaction()
