"""Tests for TaxEngine lifecycle and wiring."""

from __future__ import annotations

import pytest

from solana_tax.config.settings import PaymentStoreBackend, TaskConfig
from solana_tax.engine.client import TaxEngine
from solana_tax.engine.payments.store import DatastorePaymentStore, MemoryPaymentStore
from solana_tax.engine.validation import validate_date_range
from tests.helpers import WALLET


class TestLifecycle:
    async def test_not_initialized(self, app_config, chain):
        engine = TaxEngine(app_config, chain=chain)
        assert engine.is_initialized is False
        assert await engine.health_check() == {"engine": "not_initialized"}
        for prop in (
            "price_table",
            "classifier",
            "payment_gate",
            "transaction_service",
            "export_service",
        ):
            with pytest.raises(RuntimeError, match="not initialized"):
                getattr(engine, prop)
        assert engine.metrics is None
        assert engine.task_manager is None

    async def test_initialize_and_close(self, app_config, chain, clock):
        engine = TaxEngine(app_config, chain=chain, clock=clock)
        await engine.initialize()
        assert engine.is_initialized
        assert engine.chain is chain
        assert engine.clock is clock
        assert isinstance(engine.payment_gate.store, MemoryPaymentStore)
        assert engine.datastore is None
        assert engine.price_table.price_of("SOL") == 100
        assert await engine.health_check() == {
            "engine": "ok",
            "chain": "ok",
            "datastore": "disabled",
            "tasks": "disabled",
        }

        await engine.close()
        assert engine.is_initialized is False
        await engine.close()  # idempotent
        # injected chains are left to their owner
        assert engine.chain is chain

    async def test_double_initialize(self, engine):
        with pytest.raises(RuntimeError, match="already initialized"):
            await engine.initialize()

    async def test_price_gauge_seeded(self, engine):
        value = engine.metrics.registry.get_sample_value(
            "soltax_price_table_gauge", {"symbol": "SOL"}
        )
        assert value == 100.0

    async def test_metrics_disabled(self, app_config, chain):
        app_config.metrics.enabled = False
        engine = TaxEngine(app_config, chain=chain)
        await engine.initialize()
        assert engine.metrics is None
        await engine.transaction_service.get_transactions(WALLET, "2024-03-01", "2024-03-02")
        await engine.close()


class TestDatabaseStore:
    async def test_database_backed_payments(self, app_config, chain, clock):
        app_config.payments.store = PaymentStoreBackend.DATABASE
        engine = TaxEngine(app_config, chain=chain, clock=clock)
        await engine.initialize()
        try:
            assert isinstance(engine.payment_gate.store, DatastorePaymentStore)
            assert engine.datastore is not None and engine.datastore.is_open
            health = await engine.health_check()
            assert health["datastore"] == "ok"
            req = await engine.payment_gate.create(
                "csv", WALLET, validate_date_range("2024-01-01", "2024-01-31")
            )
            assert await engine.payment_gate.get(req.id) == req
        finally:
            await engine.close()
        assert engine.datastore is None


class TestTasks:
    async def test_cron_jobs_started_and_stopped(self, app_config, chain):
        app_config.task = TaskConfig(enabled=True)
        engine = TaxEngine(app_config, chain=chain)
        await engine.initialize()
        try:
            manager = engine.task_manager
            assert manager is not None
            assert manager.is_running
            assert set(manager.jobs) == {"refresh_prices", "expire_payments", "purge_payments"}
            assert (await engine.health_check())["tasks"] == "ok"
        finally:
            await engine.close()
        assert engine.task_manager is None
