from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from pix_provider.models import Base

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def configure(database_url: str) -> None:
    global _engine, _session_factory
    _engine = create_async_engine(database_url, pool_pre_ping=True)
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def _factory() -> async_sessionmaker:
    if _session_factory is None:
        raise RuntimeError("Database is not configured; set DATABASE_URL")
    return _session_factory


async def init_db() -> None:
    _factory()
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with _factory()() as session:
        yield session


async def dispose() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
