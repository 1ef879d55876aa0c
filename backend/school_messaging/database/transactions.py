from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase


@asynccontextmanager
async def optional_transaction(db: AsyncIOMotorDatabase, enabled: bool) -> AsyncIterator[Optional[AsyncIOMotorClientSession]]:
    """Yield a session inside a transaction, or ``None`` when disabled."""
    if not enabled:
        yield None
        return
    async with await db.client.start_session() as session:
        async with session.start_transaction():
            yield session
