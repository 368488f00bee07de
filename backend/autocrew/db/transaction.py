"""Insert helpers for rows whose identifiers are allocated read-then-write."""

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.errors import CodeAllocationConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_INSERT_ATTEMPTS = 3

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    True if `exc` was raised by a unique constraint.

    asyncpg errors carry the SQLSTATE; sqlite3 only reports it in the message.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


async def insert_with_retry(
    db: AsyncSession,
    build: Callable[[], Awaitable[T]],
    resource: str,
    max_attempts: int = MAX_INSERT_ATTEMPTS,
) -> T:
    """
    Build a row, insert and commit it, regenerating on unique violations.

    `build` must run the identifier generators again on every call: the
    generators read the current codes and are not atomic with the insert,
    so a concurrent request can win the same code. The unique constraint
    rejects the loser, which rolls back and tries again. Any other
    integrity error (a foreign key, a NOT NULL) is re-raised at once.
    """
    for attempt in range(1, max_attempts + 1):
        obj = await build()
        db.add(obj)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if not is_unique_violation(exc):
                raise
            logger.warning(
                "Unique violation inserting %s (attempt %d/%d): %s",
                resource, attempt, max_attempts, exc.orig,
            )
            continue
        await db.refresh(obj)
        return obj

    raise CodeAllocationConflict(resource, max_attempts)
