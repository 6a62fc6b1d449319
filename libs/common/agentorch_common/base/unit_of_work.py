"""Session-level unit of work shared by team-scoped repositories.

Inside ``transaction(session)`` repository writes flush instead of
committing; the outermost block commits once on a clean exit and rolls back
everything when it raises. Nested blocks join the enclosing one.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

TRANSACTION_DEPTH_KEY = "agentorch_transaction_depth"


def in_transaction(session: AsyncSession) -> bool:
    return session.info.get(TRANSACTION_DEPTH_KEY, 0) > 0


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    depth = session.info.get(TRANSACTION_DEPTH_KEY, 0)
    session.info[TRANSACTION_DEPTH_KEY] = depth + 1
    try:
        yield session
    except Exception:
        session.info[TRANSACTION_DEPTH_KEY] = depth
        if depth == 0:
            await session.rollback()
        raise
    session.info[TRANSACTION_DEPTH_KEY] = depth
    if depth == 0:
        await session.commit()
