"""Async SQLAlchemy engine factory for SQLite (aiosqlite) and PostgreSQL (asyncpg)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

if TYPE_CHECKING:
    from solana_tax.config.settings import DatabaseConfig


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Build an ``AsyncEngine`` for *config.dsn*.

    Pool sizing only applies to server databases; SQLite uses the
    dialect's default pool.
    """
    kwargs: dict[str, Any] = {"echo": config.debug_sql}
    if not config.dsn.startswith("sqlite"):
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = max(config.max_open_connections - config.max_idle_connections, 0)
        kwargs["pool_pre_ping"] = True
    return create_async_engine(config.dsn, **kwargs)
