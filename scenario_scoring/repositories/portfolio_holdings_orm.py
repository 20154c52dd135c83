"""Repository for holdings-backed portfolios."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from scenario_scoring.core.classification import classify
from scenario_scoring.core.exceptions import StoreError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.database.connection import get_session
from scenario_scoring.database.orm import PortfolioHolding
from scenario_scoring.domain.portfolio import Holding

logger = get_logger("repositories.portfolio_holdings")


async def get_portfolio_holdings(portfolio_id: str) -> list[Holding]:
    """Current holdings of a portfolio, heaviest first, classified by ticker."""
    stmt = (
        select(PortfolioHolding)
        .where(PortfolioHolding.portfolio_id == portfolio_id, PortfolioHolding.weight > 0)
        .order_by(PortfolioHolding.weight.desc(), PortfolioHolding.ticker)
    )
    try:
        async with get_session() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
    except SQLAlchemyError as e:
        logger.exception(f"Failed to load holdings for {portfolio_id}")
        raise StoreError(
            message=f"Failed to load holdings for {portfolio_id}",
            details={"portfolio_id": portfolio_id},
        ) from e

    return [
        Holding(ticker=row.ticker.upper(), weight=float(row.weight), asset_class=classify(row.ticker))
        for row in rows
    ]
