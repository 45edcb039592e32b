# app/api/dependencies.py

from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as aioredis

from exceptions.domain_exceptions import UnauthorizedException
from infrastructure.postgres_connection import get_db_session
from infrastructure.redis_connection import get_redis
from infrastructure.relationship_store import SqlAlchemyRelationshipStore
from services.relationship_events import RedisEventPublisher
from services.relationship_queries import RelationshipQueryService
from services.relationship_reconciler import RelationshipReconciler


async def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Identity of the caller.

    Authentication is terminated by the gateway in front of this service,
    which forwards the verified user id in the X-User-Id header.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedException(message="Missing X-User-Id header")
    return x_user_id.strip()


def get_store(session: AsyncSession = Depends(get_db_session)) -> SqlAlchemyRelationshipStore:
    return SqlAlchemyRelationshipStore(session)


def get_publisher(redis: aioredis.Redis = Depends(get_redis)) -> RedisEventPublisher:
    return RedisEventPublisher(redis)


def get_reconciler(
    store: SqlAlchemyRelationshipStore = Depends(get_store),
    publisher: RedisEventPublisher = Depends(get_publisher),
) -> RelationshipReconciler:
    return RelationshipReconciler(store, publisher)


def get_query_service(
    store: SqlAlchemyRelationshipStore = Depends(get_store),
) -> RelationshipQueryService:
    return RelationshipQueryService(store)
