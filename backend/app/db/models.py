"""SQLAlchemy ORM models for persisted trips."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on Postgres, plain JSON elsewhere (sqlite in development and tests)
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TripRecordRow(Base):
    """Trip record table - one row per trip, keyed by trip id."""

    __tablename__ = "trip_record"

    trip_id: Mapped[str] = mapped_column(Text, primary_key=True)
    home_base: Mapped[str] = mapped_column(Text, nullable=False)
    cities: Mapped[list[str]] = mapped_column(JsonColumn, nullable=False, default=list)
    trip_window: Mapped[dict[str, Any]] = mapped_column(JsonColumn, nullable=False)
    preferences: Mapped[dict[str, Any]] = mapped_column(JsonColumn, nullable=False, default=dict)
    preselected_route: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
    allocations: Mapped[list[dict[str, Any]]] = mapped_column(
        JsonColumn, nullable=False, default=list
    )
    days: Mapped[list[dict[str, Any]]] = mapped_column(JsonColumn, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
