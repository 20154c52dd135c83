"""SQLAlchemy ORM models.

Uses SQLAlchemy 2.0 typed mappings. JSON columns use JSONB on PostgreSQL.

Usage:
    from scenario_scoring.database.orm import AnalogScoreCacheEntry
    from scenario_scoring.database.connection import get_session
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Naming convention for constraints and indexes (deterministic names for Alembic)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class AnalogScoreCacheEntry(Base):
    """
    Cached score of one portfolio against one analog, per format version.

    Written only by the offline population job. Rows under an older version
    stay in place but are never returned to lookups for the current version.
    """
    __tablename__ = "analog_score_cache"
    __table_args__ = (
        UniqueConstraint("analog_id", "portfolio_id", "version"),
        Index("ix_analog_score_cache_analog_version", "analog_id", "version"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    analog_id: Mapped[str] = mapped_column(String(64), nullable=False)
    portfolio_id: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Denormalized for display without joining the registry/catalog
    portfolio_name: Mapped[str] = mapped_column(String(120), nullable=False)
    analog_name: Mapped[str | None] = mapped_column(String(120))
    analog_period: Mapped[str | None] = mapped_column(String(64))

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False)
    portfolio_return: Mapped[float] = mapped_column(Float, nullable=False)
    benchmark_return: Mapped[float] = mapped_column(Float, nullable=False)
    outperformance: Mapped[float] = mapped_column(Float, nullable=False)
    portfolio_drawdown: Mapped[float] = mapped_column(Float, nullable=False)
    benchmark_drawdown: Mapped[float] = mapped_column(Float, nullable=False)
    return_score: Mapped[float] = mapped_column(Float, nullable=False)
    drawdown_score: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_upside: Mapped[float | None] = mapped_column(Float)
    estimated_downside: Mapped[float | None] = mapped_column(Float)

    holdings: Mapped[list | None] = mapped_column(JSONType)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PortfolioHolding(Base):
    """Current position of a holdings-backed portfolio (e.g. the TIME fund)."""
    __tablename__ = "portfolio_holdings"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "ticker"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    portfolio_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    ticker: Mapped[str] = mapped_column(String(20), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
