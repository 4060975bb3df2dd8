"""TokenPriceTable — process-wide symbol → USD price map.

Seeded from configuration at startup and refreshed in place by the
``refresh_prices`` cron job. Entries are replaced whole and never removed,
so readers always see either the old or the new price for a symbol.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from solana_tax.engine.classifier.programs import UNKNOWN_TOKEN
from solana_tax.errors.tax_errors import TaxError
from solana_tax.utils.clock import utc_now

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping
    from datetime import datetime

    from solana_tax.config.settings import PriceConfig
    from solana_tax.utils.clock import Clock

    PriceFetcher = Callable[[Iterable[str]], Awaitable[Mapping[str, Decimal]]]

logger = logging.getLogger(__name__)


class TokenPriceTable:
    """USD unit prices keyed by token symbol; lookups never fail."""

    def __init__(
        self,
        seed: Mapping[str, Decimal] | None = None,
        *,
        unknown_price: Decimal = Decimal(0),
        clock: Clock = utc_now,
    ) -> None:
        self._prices: dict[str, Decimal] = {}
        self._unknown_price = unknown_price
        self._clock = clock
        self._refreshed_at: datetime | None = None
        self._prices[UNKNOWN_TOKEN] = unknown_price
        if seed:
            self.update(seed)

    @classmethod
    def from_config(cls, config: PriceConfig, *, clock: Clock = utc_now) -> TokenPriceTable:
        return cls(config.seed_prices, unknown_price=config.unknown_token_price, clock=clock)

    def price_of(self, symbol: str) -> Decimal:
        """USD price for *symbol*, the unknown-token price if not tracked."""
        return self._prices.get(symbol, self._unknown_price)

    def update(self, prices: Mapping[str, Decimal]) -> int:
        """Replace entries with *prices*; negative values are ignored.

        Returns:
            Number of entries written.
        """
        written = 0
        for symbol, price in prices.items():
            value = Decimal(price)
            if value < 0:
                logger.warning("Ignoring negative price %s for %s", value, symbol)
                continue
            self._prices[symbol] = value
            written += 1
        return written

    async def refresh(self, fetch: PriceFetcher, symbols: Iterable[str]) -> bool:
        """Pull live prices and overwrite the matching entries.

        Feed failures keep the current entries and are only logged.

        Returns:
            True if the feed answered, False if the previous table was kept.
        """
        wanted = list(symbols)
        try:
            live = await fetch(wanted)
        except TaxError as exc:
            logger.warning("Price refresh failed, keeping previous prices: %s", exc.message)
            return False
        written = self.update(live)
        self._refreshed_at = self._clock()
        logger.info("Refreshed %d/%d token prices", written, len(wanted))
        return True

    def snapshot(self) -> dict[str, Decimal]:
        """Copy of the current table."""
        return dict(self._prices)

    @property
    def refreshed_at(self) -> datetime | None:
        """Time of the last successful refresh, None if still on seed prices."""
        return self._refreshed_at

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._prices

    def __len__(self) -> int:
        return len(self._prices)
