"""Database engine, sessions and ORM models."""

from .connection import (
    close_database,
    get_async_database_url,
    get_session,
    init_database,
)
from .orm import AnalogScoreCacheEntry, Base, PortfolioHolding


__all__ = [
    "AnalogScoreCacheEntry",
    "Base",
    "PortfolioHolding",
    "close_database",
    "get_async_database_url",
    "get_session",
    "init_database",
]
