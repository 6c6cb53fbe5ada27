"""
ORM models for the on-device cache database.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CacheSlot(Base):
    """One named slot holding a JSON document."""

    __tablename__ = "cache_slots"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        server_default=func.now(),
        onupdate=lambda: dt.datetime.now(dt.timezone.utc),
    )


__all__ = ["Base", "CacheSlot"]
