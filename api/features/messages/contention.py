"""Bounded retry for chain-scoped read-then-write transactions."""
import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from api.shared.exceptions import ChainContentionError

T = TypeVar("T")

logger = logging.getLogger("chat.messages.contention")
chain_logger = structlog.get_logger("chat.chain")


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Exponential backoff with jitter for the given 1-based attempt."""
    delay = min(cap, base * (2 ** (attempt - 1)))
    return delay + random.uniform(0, base)


async def run_with_chain_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    db_session: AsyncSession,
    root_id: int,
    max_attempts: int,
    backoff_base: float,
    backoff_max: float,
) -> T:
    """Run ``operation`` and commit; on contention roll back and try again.

    The operation must redo all of its reads, since a rollback discards
    everything it saw. After ``max_attempts`` failures the last contention is
    surfaced with the number of attempts made.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            await db_session.commit()
            return result
        except (ChainContentionError, IntegrityError, OperationalError):
            await db_session.rollback()
            if attempt == max_attempts:
                logger.warning(
                    f"Chain {root_id} still contended after {attempt} attempts"
                )
                raise ChainContentionError(root_id, attempts=attempt)
            delay = backoff_delay(attempt, backoff_base, backoff_max)
            chain_logger.info(
                "chain_contention_retry",
                root_id=root_id,
                attempt=attempt,
                delay_s=round(delay, 3),
            )
            await asyncio.sleep(delay)
    raise ChainContentionError(root_id, attempts=max_attempts)
