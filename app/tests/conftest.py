"""
Pytest configuration and fixtures for testing
"""
import os
import pytest
from typing import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from infrastructure.postgres_connection import Base
from infrastructure.relationship_store import SqlAlchemyRelationshipStore
from services.relationship_events import RedisEventPublisher
from services.relationship_queries import RelationshipQueryService
from services.relationship_reconciler import RelationshipReconciler
from test_helpers import NO_WAIT_RETRIES, RecordingPublisher


# Test database URL - using file-based SQLite to avoid in-memory connection issues
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest.fixture(scope="function")
async def db_engine():
    """Create a test database engine"""
    # Import all models to ensure they're registered with Base.metadata
    import models  # noqa: F401

    # Remove test database if it exists
    if os.path.exists("./test.db"):
        os.remove("./test.db")

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the transaction
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables and close
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()

    # Remove test database file
    if os.path.exists("./test.db"):
        os.remove("./test.db")


@pytest.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session"""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def redis_client():
    """Create a test Redis client using fakeredis"""
    import fakeredis.aioredis

    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)

    yield redis

    # Cleanup
    await redis.flushall()
    await redis.aclose()


@pytest.fixture
def store(db_session: AsyncSession) -> SqlAlchemyRelationshipStore:
    """Relationship store bound to the test session"""
    return SqlAlchemyRelationshipStore(db_session)


@pytest.fixture
def publisher() -> RecordingPublisher:
    """In-memory event publisher"""
    return RecordingPublisher()


@pytest.fixture
def redis_publisher(redis_client) -> RedisEventPublisher:
    """Event publisher backed by fakeredis"""
    return RedisEventPublisher(redis_client, inbox_size=5)


@pytest.fixture
def reconciler(store: SqlAlchemyRelationshipStore, publisher: RecordingPublisher) -> RelationshipReconciler:
    """Reconciler without retry delays"""
    return RelationshipReconciler(store, publisher, retry_policy=NO_WAIT_RETRIES)


@pytest.fixture
def queries(store: SqlAlchemyRelationshipStore) -> RelationshipQueryService:
    """Read-side query service on the test session"""
    return RelationshipQueryService(store, retry_policy=NO_WAIT_RETRIES)
