"""
Unit tests for RedisEventPublisher
"""
import json
import pytest
from schemas.event_schema import FriendRequestReceivedEvent, MatchCreatedEvent
from services.relationship_events import RedisEventPublisher
from test_helpers import ALICE, BOB


def match_event(recipient_id: str, match_id: int) -> MatchCreatedEvent:
    return MatchCreatedEvent(
        recipient_id=recipient_id,
        match_id=match_id,
        other_user_id=BOB if recipient_id == ALICE else ALICE,
        mode="dating",
        conversation_id=match_id * 10
    )


@pytest.mark.unit
class TestRedisEventPublisher:
    """Test cases for event fan-out through Redis"""

    def test_keys_are_namespaced_per_user(self, redis_publisher: RedisEventPublisher):
        """Test channel and inbox naming"""
        assert redis_publisher.channel_for(ALICE) == f"drift:events:{ALICE}"
        assert redis_publisher.inbox_for(ALICE) == f"drift:inbox:{ALICE}"

    async def test_publish_stores_event_in_inbox(self, redis_publisher: RedisEventPublisher, redis_client):
        """Test that the recipient's inbox receives the serialized event"""
        await redis_publisher.publish(match_event(ALICE, 1))

        raw = await redis_client.lrange(redis_publisher.inbox_for(ALICE), 0, -1)
        assert len(raw) == 1
        payload = json.loads(raw[0])
        assert payload["event"] == "match_created"
        assert payload["recipient_id"] == ALICE
        assert payload["other_user_id"] == BOB
        assert payload["conversation_id"] == 10
        assert await redis_client.llen(redis_publisher.inbox_for(BOB)) == 0

    async def test_recent_events_newest_first(self, redis_publisher: RedisEventPublisher):
        """Test that recent_events returns the latest events first"""
        for match_id in (1, 2, 3):
            await redis_publisher.publish(match_event(ALICE, match_id))

        events = await redis_publisher.recent_events(ALICE, limit=2)

        assert [e["match_id"] for e in events] == [3, 2]

    async def test_inbox_is_capped(self, redis_publisher: RedisEventPublisher, redis_client):
        """Test that only the newest inbox_size events are kept"""
        for match_id in range(1, 9):
            await redis_publisher.publish(match_event(ALICE, match_id))

        assert await redis_client.llen(redis_publisher.inbox_for(ALICE)) == 5
        events = await redis_publisher.recent_events(ALICE, limit=20)
        assert [e["match_id"] for e in events] == [8, 7, 6, 5, 4]

    async def test_publish_reaches_subscribers(self, redis_publisher: RedisEventPublisher, redis_client):
        """Test that online clients get the event on their channel"""
        pubsub = redis_client.pubsub()
        await pubsub.subscribe(redis_publisher.channel_for(BOB))

        await redis_publisher.publish(
            FriendRequestReceivedEvent(recipient_id=BOB, request_id=7, requester_id=ALICE)
        )

        message = None
        for _ in range(10):
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.1)
            if message is not None:
                break

        await pubsub.unsubscribe()
        await pubsub.aclose()

        assert message is not None
        payload = json.loads(message["data"])
        assert payload["event"] == "friend_request_received"
        assert payload["requester_id"] == ALICE

    async def test_recent_events_for_unknown_user(self, redis_publisher: RedisEventPublisher):
        """Test that a user without events gets an empty list"""
        assert await redis_publisher.recent_events(BOB) == []
