"""
Declarative base, timestamp columns and ULID keys shared by every table.
"""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ulid import ULID


def generate_ulid() -> str:
    """Sortable 26-character id used for organizations, templates and submissions."""
    return str(ULID())


class Base(DeclarativeBase):
    """Registry for the checklist tables; ``init_db`` creates everything attached to it."""


class TimestampMixin:
    """
    ``created_at``/``updated_at`` maintained by the database.

    Organizations, memberships, templates and submissions carry these;
    section, field and answer rows live and die with their parent and do not.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
