# recalltrial/db.py
from __future__ import annotations

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from recalltrial.config import settings
from recalltrial.models.base import Base  # re-export for init_db / alembic

__all__ = ["Base", "engine", "SessionLocal", "get_session"]


# === 1. Engine ===
# DSN example: postgresql+asyncpg://app:app@db:5432/app
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    pool_pre_ping=True,
)


# === 2. Session ===
SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# === 3. Dependency for FastAPI and jobs ===
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Async SQLAlchemy session."""
    async with SessionLocal() as session:
        yield session
