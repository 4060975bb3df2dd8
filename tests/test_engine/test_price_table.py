"""Tests for TokenPriceTable."""

from __future__ import annotations

from decimal import Decimal

from solana_tax.config.settings import PriceConfig
from solana_tax.engine.classifier.programs import UNKNOWN_TOKEN
from solana_tax.engine.pricing.price_table import TokenPriceTable
from solana_tax.errors.chain_errors import PriceFeedError
from tests.helpers import BASE_TIME, FakeClock


class TestLookup:
    def test_seeded_prices(self):
        table = TokenPriceTable({"SOL": Decimal("100"), "USDC": Decimal("1")})
        assert table.price_of("SOL") == Decimal("100")
        assert "USDC" in table
        assert UNKNOWN_TOKEN in table
        assert len(table) == 3

    def test_missing_symbol_uses_unknown_price(self):
        table = TokenPriceTable(unknown_price=Decimal("0.5"))
        assert table.price_of("NOPE") == Decimal("0.5")
        assert table.price_of(UNKNOWN_TOKEN) == Decimal("0.5")

    def test_from_config(self):
        table = TokenPriceTable.from_config(PriceConfig())
        assert table.price_of("SOL") > 0
        assert table.refreshed_at is None

    def test_update_skips_negative(self):
        table = TokenPriceTable({"SOL": Decimal("100")})
        written = table.update({"SOL": Decimal("-1"), "JUP": Decimal("0.9")})
        assert written == 1
        assert table.price_of("SOL") == Decimal("100")
        assert table.price_of("JUP") == Decimal("0.9")

    def test_snapshot_is_a_copy(self):
        table = TokenPriceTable({"SOL": Decimal("100")})
        snap = table.snapshot()
        snap["SOL"] = Decimal("1")
        assert table.price_of("SOL") == Decimal("100")


class TestRefresh:
    async def test_refresh_overwrites_matching_entries(self):
        clock = FakeClock()
        table = TokenPriceTable({"SOL": Decimal("100"), "USDC": Decimal("1")}, clock=clock)
        requested = []

        async def fetch(symbols):
            requested.extend(symbols)
            return {"SOL": Decimal("142.5")}

        assert await table.refresh(fetch, ["SOL", "USDC"]) is True
        assert requested == ["SOL", "USDC"]
        assert table.price_of("SOL") == Decimal("142.5")
        assert table.price_of("USDC") == Decimal("1")
        assert table.refreshed_at == BASE_TIME

    async def test_feed_failure_keeps_previous_table(self):
        table = TokenPriceTable({"SOL": Decimal("100")})

        async def fetch(symbols):
            raise PriceFeedError("rate limited", status_code=429)

        assert await table.refresh(fetch, ["SOL"]) is False
        assert table.price_of("SOL") == Decimal("100")
        assert table.refreshed_at is None
