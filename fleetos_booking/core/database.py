"""Database engine and session factory with lazy initialisation."""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from .config import settings

# Use NullPool for serverless.
# Use None for standard deployment (SQLAlchemy auto-selects AsyncAdaptedQueuePool).
POOL_CLASS = NullPool if settings.IS_SERVERLESS else None

engine: AsyncEngine | None = None
ASYNC_SESSION_LOCAL: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    pass


def _initialize_engine() -> None:
    """Initialize the async engine and session factory lazily."""
    global engine, ASYNC_SESSION_LOCAL
    if engine is not None:
        return

    pool_kwargs = {}
    if not settings.IS_SERVERLESS:
        pool_kwargs = {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        }

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        poolclass=POOL_CLASS,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        connect_args={
            "server_settings": {
                "application_name": settings.PROJECT_NAME,
                "statement_timeout": "30000",
            }
        },
        **pool_kwargs,
    )

    ASYNC_SESSION_LOCAL = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory, initializing the engine if needed."""
    if ASYNC_SESSION_LOCAL is None:
        _initialize_engine()
    return ASYNC_SESSION_LOCAL


async def dispose_engine() -> None:
    """Close pooled connections; called on application shutdown."""
    global engine, ASYNC_SESSION_LOCAL
    if engine is None:
        return
    await engine.dispose()
    engine = None
    ASYNC_SESSION_LOCAL = None

