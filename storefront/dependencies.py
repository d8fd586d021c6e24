from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_rate_limiter(request: Request):
    """Process-scoped cart rate limiter created in the app lifespan."""
    return request.app.state.rate_limiter


def get_connection_registry(request: Request):
    """Process-scoped connection registry created in the app lifespan."""
    return request.app.state.connection_registry
