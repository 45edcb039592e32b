# app/infrastructure/relationship_store.py

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Tuple, Type
from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

logger = logging.getLogger(__name__)


class TransientStoreError(Exception):
    """Storage failure that may succeed when the whole operation is retried"""


def is_transient_error(exc: BaseException) -> bool:
    """Connection drops, timeouts and lock contention are worth retrying"""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (TimeoutError, ConnectionError))


def is_unique_violation(exc: IntegrityError) -> bool:
    """Only a duplicate key means a concurrent writer got there first"""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == "23505"
    return "unique" in str(orig).lower()


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except TransientStoreError:
        raise
    except Exception as exc:
        if is_transient_error(exc):
            raise TransientStoreError(f"{operation} failed: {exc}") from exc
        raise


class RelationshipStore(ABC):
    """
    Storage contract of the relationship reconciler.

    Rows are addressed by a `key` dict of column values. The store is the
    only arbiter of concurrent writes: fetch-or-create relies on unique
    constraints and conditional updates are single compare-and-set
    statements, so callers never need in-process locks.
    """

    @abstractmethod
    def transaction(self) -> "AsyncIterator[RelationshipStore]":
        """Async context manager; commits on success and rolls back on any exception"""

    @abstractmethod
    async def insert(self, model: Type[Any], fields: Dict[str, Any]) -> Any:
        """Insert a new row"""

    @abstractmethod
    async def get(self, model: Type[Any], key: Dict[str, Any]) -> Optional[Any]:
        """Read the current state of a row, or None"""

    @abstractmethod
    async def upsert_if_absent(
        self,
        model: Type[Any],
        key: Dict[str, Any],
        fields: Dict[str, Any]
    ) -> Tuple[Any, bool]:
        """Fetch the row for key or create it with fields; returns (row, was_created)"""

    @abstractmethod
    async def conditional_update(
        self,
        model: Type[Any],
        key: Dict[str, Any],
        expected: Dict[str, Any],
        new_fields: Dict[str, Any]
    ) -> Tuple[Optional[Any], bool]:
        """Apply new_fields only if the row still holds expected; returns (fresh row, applied)"""

    @abstractmethod
    async def select(self, model: Type[Any], *criteria: Any, order_by: Any = None) -> List[Any]:
        """Read all rows matching criteria"""


class SqlAlchemyRelationshipStore(RelationshipStore):
    """Relationship store on top of an async SQLAlchemy session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlAlchemyRelationshipStore"]:
        try:
            with translate_errors("transaction"):
                yield self
                await self.session.commit()
        except BaseException:
            # Also reached on cancellation: nothing of a cancelled call is kept
            await self.session.rollback()
            raise

    async def insert(self, model: Type[Any], fields: Dict[str, Any]) -> Any:
        with translate_errors(f"insert into {model.__tablename__}"):
            row = model(**fields)
            self.session.add(row)
            await self.session.flush()
            return row

    async def get(self, model: Type[Any], key: Dict[str, Any]) -> Optional[Any]:
        with translate_errors(f"read from {model.__tablename__}"):
            query = (
                select(model)
                .filter_by(**key)
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()

    async def upsert_if_absent(
        self,
        model: Type[Any],
        key: Dict[str, Any],
        fields: Dict[str, Any]
    ) -> Tuple[Any, bool]:
        row = await self.get(model, key)
        if row is not None:
            return row, False

        try:
            with translate_errors(f"insert into {model.__tablename__}"):
                async with self.session.begin_nested():
                    row = model(**key, **fields)
                    self.session.add(row)
            return row, True
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            # Lost the race against a concurrent writer, their row wins
            logger.info(f"Concurrent insert into {model.__tablename__} for {key}, reading existing row")

        row = await self.get(model, key)
        if row is None:
            raise TransientStoreError(
                f"Row for {key} in {model.__tablename__} vanished after a unique violation"
            )
        return row, False

    async def conditional_update(
        self,
        model: Type[Any],
        key: Dict[str, Any],
        expected: Dict[str, Any],
        new_fields: Dict[str, Any]
    ) -> Tuple[Optional[Any], bool]:
        criteria = [getattr(model, column) == value for column, value in key.items()]
        for column, value in expected.items():
            attribute = getattr(model, column)
            criteria.append(attribute.is_(None) if value is None else attribute == value)

        with translate_errors(f"update of {model.__tablename__}"):
            statement = (
                update(model)
                .where(*criteria)
                .values(**new_fields)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(statement)
            applied = result.rowcount == 1

        return await self.get(model, key), applied

    async def select(self, model: Type[Any], *criteria: Any, order_by: Any = None) -> List[Any]:
        with translate_errors(f"read from {model.__tablename__}"):
            query = select(model).where(*criteria)
            if order_by is not None:
                if isinstance(order_by, (list, tuple)):
                    query = query.order_by(*order_by)
                else:
                    query = query.order_by(order_by)
            result = await self.session.execute(query)
            return list(result.scalars().all())
