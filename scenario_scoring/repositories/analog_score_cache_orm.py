"""Repository for the analog_score_cache table.

Every SQLAlchemy fault is re-raised as StoreError so callers never mistake a
storage outage for an empty cache.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Float, cast, delete, distinct, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_scoring.core.exceptions import StoreError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.database.connection import get_session
from scenario_scoring.database.orm import AnalogScoreCacheEntry

logger = get_logger("repositories.analog_score_cache")

_UPSERT_KEY = ["analog_id", "portfolio_id", "version"]


@dataclass(frozen=True)
class VersionStats:
    version: int
    total_entries: int
    unique_analogs: int
    unique_portfolios: int
    avg_score: float
    last_update: datetime | None


@dataclass(frozen=True)
class AnalogEntryCount:
    analog_id: str
    count: int
    last_updated: datetime | None


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise StoreError(message=f"Upsert not supported on dialect {dialect}")


def _store_error(action: str, exc: SQLAlchemyError) -> StoreError:
    logger.exception(f"Score cache {action} failed")
    return StoreError(
        message=f"Score cache {action} failed",
        details={"reason": exc.__class__.__name__},
    )


async def get_entries(
    analog_id: str,
    version: int,
    portfolio_ids: Sequence[str] | None = None,
) -> list[AnalogScoreCacheEntry]:
    """Rows for an analog at a version, optionally limited to some portfolios."""
    stmt = select(AnalogScoreCacheEntry).where(
        AnalogScoreCacheEntry.analog_id == analog_id,
        AnalogScoreCacheEntry.version == version,
    )
    if portfolio_ids is not None:
        stmt = stmt.where(AnalogScoreCacheEntry.portfolio_id.in_(list(portfolio_ids)))

    try:
        async with get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
    except SQLAlchemyError as e:
        raise _store_error("lookup", e) from e


async def get_entry(
    analog_id: str, portfolio_id: str, version: int
) -> AnalogScoreCacheEntry | None:
    stmt = select(AnalogScoreCacheEntry).where(
        AnalogScoreCacheEntry.analog_id == analog_id,
        AnalogScoreCacheEntry.portfolio_id == portfolio_id,
        AnalogScoreCacheEntry.version == version,
    )
    try:
        async with get_session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        raise _store_error("lookup", e) from e


async def upsert_entry(values: dict[str, Any]) -> None:
    """Insert or overwrite the row keyed by (analog_id, portfolio_id, version)."""
    now = datetime.now(UTC)
    row = {**values, "updated_at": now}
    updates = {k: v for k, v in row.items() if k not in _UPSERT_KEY}

    try:
        async with get_session() as session:
            insert = _insert_for(session)
            stmt = insert(AnalogScoreCacheEntry).values(created_at=now, **row)
            stmt = stmt.on_conflict_do_update(index_elements=_UPSERT_KEY, set_=updates)
            await session.execute(stmt)
            await session.commit()
    except SQLAlchemyError as e:
        raise _store_error("write", e) from e


async def delete_all() -> int:
    """Delete every row regardless of analog or version."""
    try:
        async with get_session() as session:
            result = await session.execute(delete(AnalogScoreCacheEntry))
            await session.commit()
            return result.rowcount or 0
    except SQLAlchemyError as e:
        raise _store_error("clear", e) from e


async def count_entries(
    version: int,
    analog_ids: Sequence[str] | None = None,
    portfolio_ids: Sequence[str] | None = None,
) -> int:
    stmt = select(func.count()).select_from(AnalogScoreCacheEntry).where(
        AnalogScoreCacheEntry.version == version
    )
    if analog_ids is not None:
        stmt = stmt.where(AnalogScoreCacheEntry.analog_id.in_(list(analog_ids)))
    if portfolio_ids is not None:
        stmt = stmt.where(AnalogScoreCacheEntry.portfolio_id.in_(list(portfolio_ids)))

    try:
        async with get_session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())
    except SQLAlchemyError as e:
        raise _store_error("count", e) from e


async def get_version_stats() -> list[VersionStats]:
    """Aggregate row statistics per version, newest version first."""
    stmt = (
        select(
            AnalogScoreCacheEntry.version,
            func.count().label("total_entries"),
            func.count(distinct(AnalogScoreCacheEntry.analog_id)).label("unique_analogs"),
            func.count(distinct(AnalogScoreCacheEntry.portfolio_id)).label("unique_portfolios"),
            cast(func.avg(AnalogScoreCacheEntry.score), Float).label("avg_score"),
            func.max(AnalogScoreCacheEntry.updated_at).label("last_update"),
        )
        .group_by(AnalogScoreCacheEntry.version)
        .order_by(AnalogScoreCacheEntry.version.desc())
    )

    try:
        async with get_session() as session:
            result = await session.execute(stmt)
            rows = result.all()
    except SQLAlchemyError as e:
        raise _store_error("stats", e) from e

    return [
        VersionStats(
            version=row.version,
            total_entries=int(row.total_entries),
            unique_analogs=int(row.unique_analogs),
            unique_portfolios=int(row.unique_portfolios),
            avg_score=round(float(row.avg_score or 0.0), 2),
            last_update=row.last_update,
        )
        for row in rows
    ]


async def get_analog_counts(
    version: int, portfolio_ids: Sequence[str] | None = None
) -> dict[str, AnalogEntryCount]:
    """Row count and latest write per analog for one version."""
    stmt = (
        select(
            AnalogScoreCacheEntry.analog_id,
            func.count().label("entry_count"),
            func.max(AnalogScoreCacheEntry.updated_at).label("last_updated"),
        )
        .where(AnalogScoreCacheEntry.version == version)
        .group_by(AnalogScoreCacheEntry.analog_id)
    )
    if portfolio_ids is not None:
        stmt = stmt.where(AnalogScoreCacheEntry.portfolio_id.in_(list(portfolio_ids)))

    try:
        async with get_session() as session:
            result = await session.execute(stmt)
            rows = result.all()
    except SQLAlchemyError as e:
        raise _store_error("status", e) from e

    return {
        row.analog_id: AnalogEntryCount(
            analog_id=row.analog_id,
            count=int(row.entry_count),
            last_updated=row.last_updated,
        )
        for row in rows
    }
