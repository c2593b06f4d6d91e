from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings
from .models import Base


def create_engine(settings: Settings) -> AsyncEngine:
    url = settings.resolve_database_url()

    # PgBouncer transaction mode requires disabling prepared statements in asyncpg
    connect_args = {}
    if url.startswith("postgresql+asyncpg") and settings.behind_pgbouncer:
        connect_args["statement_cache_size"] = 0

    return create_async_engine(url, echo=settings.db_echo, connect_args=connect_args)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
