"""Schema creation for the payment tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from solana_tax.engine.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table registered on :class:`Base` (no-op for existing ones)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine: AsyncEngine) -> None:
    """Drop every table registered on :class:`Base`. Test helper."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
