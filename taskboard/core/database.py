"""
Database configuration and session management
"""

from collections.abc import AsyncGenerator

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from taskboard.core.config import settings

# JSONB on PostgreSQL, plain JSON elsewhere (test database)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Convert postgresql:// to postgresql+asyncpg://
POSTGRES_URL = settings.postgres_url.replace("postgresql://", "postgresql+asyncpg://")

# Create async engine
engine = create_async_engine(
    POSTGRES_URL,
    echo=True if settings.ENVIRONMENT == "development" else False,  # Log SQL queries
    future=True,
    pool_pre_ping=True,  # Ping before using a connection
    pool_size=10,  # Keep 10 connections open
    max_overflow=20,  # Allow 20 extra connections
    pool_timeout=30,  # Wait 30s for connection
    pool_recycle=1800,  # Recycle connections every 30 minutes
    connect_args={
        "timeout": 10,  # Connection timeout
        "command_timeout": 60,  # Command timeout
    },
)

# Create async session maker
AsyncSessionMaker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession]:
    """
    Dependency for getting async database sessions
    """
    async with AsyncSessionMaker() as session:
        try:
            yield session
            # Services commit explicitly: the task update and its audit rows are separate commits
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def register_models() -> None:
    """Import every table model so it is registered on SQLModel.metadata"""
    from taskboard.models.audit import DueDateChange, TaskProgressUpdate
    from taskboard.models.profile import Profile
    from taskboard.models.report import DailyReport
    from taskboard.models.system_settings import SystemSettings
    from taskboard.models.task import Task
    from taskboard.models.team import Team, TeamMember

    _ = (
        Profile,
        Task,
        Team,
        TeamMember,
        SystemSettings,
        DueDateChange,
        TaskProgressUpdate,
        DailyReport,
    )  # Reference to prevent auto-removal by linters


async def init_db() -> None:
    """
    Initialize database - create all tables
    Note: In multi-worker deployments, this should be run once before starting workers
    to avoid race conditions. The checkfirst=True prevents errors if tables exist.
    """
    register_models()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def check_db_health() -> bool:
    """Health check for database connection"""
    try:
        from sqlalchemy import text

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
