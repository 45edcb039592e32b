# app/services/relationship_events.py

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import redis.asyncio as aioredis

from config.settings import settings
from schemas.event_schema import RelationshipEvent

logger = logging.getLogger(__name__)


class EventPublisher(ABC):
    """Sink for relationship events addressed to a single user"""

    @abstractmethod
    async def publish(self, event: RelationshipEvent) -> None:
        """Deliver one event to event.recipient_id"""


class RedisEventPublisher(EventPublisher):
    """
    Fans relationship events out through Redis.

    Every event is published on the recipient's channel for online clients
    and pushed onto a capped per-user inbox list so offline clients can
    catch up later.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel_prefix: str = settings.EVENTS_CHANNEL_PREFIX,
        inbox_prefix: str = settings.NOTIFICATION_INBOX_PREFIX,
        inbox_size: int = settings.NOTIFICATION_INBOX_SIZE
    ):
        self.redis = redis
        self.channel_prefix = channel_prefix
        self.inbox_prefix = inbox_prefix
        self.inbox_size = inbox_size

    def channel_for(self, user_id: str) -> str:
        return f"{self.channel_prefix}:{user_id}"

    def inbox_for(self, user_id: str) -> str:
        return f"{self.inbox_prefix}:{user_id}"

    async def publish(self, event: RelationshipEvent) -> None:
        payload = event.model_dump_json()
        inbox = self.inbox_for(event.recipient_id)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.publish(self.channel_for(event.recipient_id), payload)
            pipe.lpush(inbox, payload)
            pipe.ltrim(inbox, 0, self.inbox_size - 1)
            await pipe.execute()

        logger.info(f"Published {event.event} to user {event.recipient_id}")

    async def recent_events(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Newest-first events from the user's inbox"""
        raw_events = await self.redis.lrange(self.inbox_for(user_id), 0, limit - 1)
        return [json.loads(raw) for raw in raw_events]
