"""Background task definitions — cron job handlers.

Each handler logs and swallows its own failures so one bad run never
stops the schedule.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from solana_tax.engine.client import TaxEngine

logger = logging.getLogger(__name__)


async def task_refresh_prices(engine: TaxEngine) -> None:
    """Reload the price table from the live feed; keep old prices on failure."""
    try:
        table = engine.price_table
        symbols = list(engine.config.prices.coingecko_ids)
        refreshed = await table.refresh(engine.chain.fetch_chain_price, symbols)
        if refreshed and engine.metrics is not None:
            engine.metrics.set_prices(table.snapshot())
    except Exception:
        logger.exception("refresh_prices failed")


async def task_expire_payments(engine: TaxEngine) -> None:
    """Expire pending payment requests whose window has passed."""
    try:
        expired = await engine.payment_gate.expire_stale()
        if expired:
            logger.info("Expired %d payment requests", expired)
    except Exception:
        logger.exception("expire_payments failed")


async def task_purge_payments(engine: TaxEngine) -> None:
    """Delete paid/expired/failed requests older than the retention window."""
    try:
        purged = await engine.payment_gate.purge()
        if purged:
            logger.info("Purged %d payment requests", purged)
    except Exception:
        logger.exception("purge_payments failed")
