"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_cycles.config import Settings, get_settings
from payroll_cycles.database import init_db
from payroll_cycles.repository import PayrollRepository


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the application engine."""
    _, factory = init_db()
    return factory


async def get_db_session(
    factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back.
    """
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PayrollRepository:
    return PayrollRepository(session)


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> str | None:
    """Extract the acting user from the X-Actor-ID header, if any."""
    if x_actor_id is None:
        return None
    return x_actor_id.strip() or None


async def require_actor_id(
    actor_id: Annotated[str | None, Depends(get_actor_id)],
) -> str:
    """Same as get_actor_id, but the header is mandatory."""
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID header is required",
        )
    return actor_id


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Repository = Annotated[PayrollRepository, Depends(get_repository)]
AppSettings = Annotated[Settings, Depends(get_settings)]
OptionalActorId = Annotated[str | None, Depends(get_actor_id)]
ActorId = Annotated[str, Depends(require_actor_id)]
