"""
Async engine, session factory and the request-scoped session dependency.

The URL comes from ``DATABASE_URL``; aiosqlite is the default driver and
any other SQLAlchemy async driver (e.g. asyncpg) works without changes here.
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from checklist.core import config


def make_engine(url: str) -> AsyncEngine:
    # SQLite connections are not shared between tasks
    return create_async_engine(
        url,
        poolclass=NullPool if url.startswith("sqlite") else None,
        echo=False,
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Sessions keep loaded attributes after commit; ``SqlRepository`` detaches
    rows right after converting them, so nothing is lazily reloaded later.
    """
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine(config.SQLALCHEMY_DATABASE_URL)
AsyncSessionLocal = make_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Repositories commit their own transactions; anything left pending when
    the request finishes is committed here and rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _register_models() -> None:
    from checklist.features.organizations.models import Organization, Membership, Invitation  # noqa: F401
    from checklist.features.templates.models import (  # noqa: F401
        Template, TemplateSection, TemplateField
    )
    from checklist.features.submissions.models import Submission, SubmissionAnswer  # noqa: F401


async def init_db(bind: AsyncEngine | None = None):
    """Create any missing tables on ``bind`` (the application engine by default)."""
    from checklist.core.database.base import Base

    _register_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
