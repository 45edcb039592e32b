# app/services/store_retry.py

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from config.settings import settings
from exceptions.domain_exceptions import StorageUnavailableException
from infrastructure.relationship_store import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for transient store failures"""
    max_retries: int = 3
    base_delay: float = 0.05
    max_delay: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.STORE_MAX_RETRIES,
            base_delay=settings.STORE_RETRY_BASE_DELAY,
            max_delay=settings.STORE_RETRY_MAX_DELAY,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-indexed)"""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    operation_name: str
) -> T:
    """
    Run `operation` and re-run it from scratch on TransientStoreError.

    Every attempt must be a complete store transaction, a failed attempt has
    already been rolled back when it is retried. Domain errors are not
    retried and propagate untouched.

    Raises:
        StorageUnavailableException: If the store still fails after max_retries
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except TransientStoreError as e:
            attempt += 1
            if attempt > policy.max_retries:
                logger.error(f"{operation_name} failed after {attempt} attempts: {e}")
                raise StorageUnavailableException(
                    message="Relationship store is unavailable",
                    details={"operation": operation_name, "attempts": attempt}
                ) from e

            delay = policy.delay_for(attempt)
            logger.warning(
                f"{operation_name} hit a transient store failure ({e}), retry {attempt}/{policy.max_retries} in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
