"""Shared test fixtures for the solana-tax test suite."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from solana_tax.config.settings import (
    AppConfig,
    DatabaseConfig,
    DatabaseEngine,
    MetricsConfig,
    PaymentConfig,
    PriceConfig,
    TaskConfig,
)
from tests.helpers import SERVICE_ADDRESS, FakeChain, FakeClock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from solana_tax.engine.client import TaxEngine


@pytest.fixture
def app_config() -> AppConfig:
    """Test AppConfig: memory payment store, no cron jobs, fixed seed prices."""
    return AppConfig(
        debug=True,
        prices=PriceConfig(
            seed_prices={"SOL": Decimal("100"), "USDC": Decimal("1"), "USDT": Decimal("1")},
        ),
        payments=PaymentConfig(payment_address=SERVICE_ADDRESS),
        db=DatabaseConfig(engine=DatabaseEngine.SQLITE, dsn="sqlite+aiosqlite:///:memory:"),
        metrics=MetricsConfig(enabled=True),
        task=TaskConfig(enabled=False),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
async def engine(app_config, chain, clock) -> AsyncIterator[TaxEngine]:
    """Initialized TaxEngine wired to the fake chain and clock."""
    from solana_tax.engine.client import TaxEngine

    eng = TaxEngine(app_config, chain=chain, clock=clock)
    await eng.initialize()
    yield eng
    await eng.close()
