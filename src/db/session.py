from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import get_settings
from src.db.models import Base


def get_async_engine(db_url: Optional[str] = None) -> AsyncEngine:
    """Creates an asynchronous SQLAlchemy engine instance."""
    db_url = db_url or get_settings().database_url
    kwargs = {"echo": False}
    if not db_url.startswith("sqlite"):
        # SQLite uses a static pool; sizing only applies to server databases
        kwargs.update(pool_size=10, max_overflow=20, pool_pre_ping=True, pool_recycle=1800)
    return create_async_engine(db_url, **kwargs)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Creates an asynchronous session factory."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = get_async_engine()
    return _engine


def get_default_session_factory() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = get_session_factory(get_engine())
    return _session_factory


async def init_db() -> None:
    """Creates the persona tables that do not exist yet."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency to provide a database session.

    Handles session creation, commit, rollback, and closing.
    """
    async with get_default_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
