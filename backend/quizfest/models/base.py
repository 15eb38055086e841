"""
Base models and mixins for SQLAlchemy ORM.

Provides the declarative base plus mixins for UUID primary keys and
creation timestamps shared by all tables.
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base


# SQLAlchemy declarative base for all ORM models
Base = declarative_base()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UUIDMixin:
    """
    Mixin that adds a UUID primary key column.

    UUIDs are stored as strings so SQLite and PostgreSQL behave alike.
    """

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="UUID primary key"
    )


class CreatedAtMixin:
    """
    Mixin that adds an immutable created_at column.
    """

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
        doc="UTC timestamp when record was created"
    )

