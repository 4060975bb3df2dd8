"""TaxEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from solana_tax.config.settings import PaymentStoreBackend
from solana_tax.utils.clock import utc_now

if TYPE_CHECKING:
    from solana_tax.chain.service import ChainService
    from solana_tax.config.settings import AppConfig
    from solana_tax.datastore.client import Datastore
    from solana_tax.engine.classifier.classifier import TransactionClassifier
    from solana_tax.engine.models.payment import ExportType
    from solana_tax.engine.payments.gate import PaymentGate
    from solana_tax.engine.pricing.price_table import TokenPriceTable
    from solana_tax.engine.services.export_service import ExportService
    from solana_tax.engine.services.transaction_service import TransactionService
    from solana_tax.metrics.collector import EngineMetrics
    from solana_tax.taskmanager.manager import TaskManager
    from solana_tax.utils.clock import Clock

logger = logging.getLogger(__name__)

_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class TaxEngine:
    """Central engine that owns every collaborator and service.

    The chain service and clock can be injected, which is how tests drive
    the engine without network access or real time.

    Usage::

        engine = TaxEngine(config)
        await engine.initialize()
        try:
            txs = await engine.transaction_service.get_transactions(addr, start, end)
        finally:
            await engine.close()
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        chain: ChainService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._config = config
        self._clock = clock
        self._initialized = False

        self._chain = chain
        self._owns_chain = chain is None
        self._datastore: Datastore | None = None
        self._metrics: EngineMetrics | None = None
        self._price_table: TokenPriceTable | None = None
        self._classifier: TransactionClassifier | None = None
        self._payment_gate: PaymentGate | None = None
        self._transaction_service: TransactionService | None = None
        self._export_service: ExportService | None = None
        self._task_manager: TaskManager | None = None

    async def initialize(self) -> None:
        """Connect collaborators, build services and start the cron jobs.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        # Import here to avoid circular deps
        from solana_tax.engine.classifier.classifier import TransactionClassifier
        from solana_tax.engine.payments.gate import PaymentGate
        from solana_tax.engine.payments.store import DatastorePaymentStore, MemoryPaymentStore
        from solana_tax.engine.pricing.price_table import TokenPriceTable
        from solana_tax.engine.services.export_service import ExportService
        from solana_tax.engine.services.transaction_service import TransactionService

        if self._chain is None:
            from solana_tax.chain.service import ChainService

            self._chain = ChainService(self._config)
            await self._chain.connect()

        if self._config.metrics.enabled:
            from solana_tax.metrics.collector import EngineMetrics

            self._metrics = EngineMetrics()

        self._price_table = TokenPriceTable.from_config(self._config.prices, clock=self._clock)
        if self._metrics is not None:
            self._metrics.set_prices(self._price_table.snapshot())
        self._classifier = TransactionClassifier(self._price_table)

        if self._config.payments.store is PaymentStoreBackend.DATABASE:
            from solana_tax.datastore.client import Datastore

            self._datastore = Datastore(self._config.db)
            await self._datastore.open()
            store = DatastorePaymentStore(self._datastore)
        else:
            store = MemoryPaymentStore()

        self._payment_gate = PaymentGate(
            self._config.payments,
            self._chain,
            store=store,
            clock=self._clock,
            metrics=self._metrics,
            exportable=self._can_render,
        )
        self._transaction_service = TransactionService(self)
        self._export_service = ExportService(self)

        if self._config.task.enabled:
            await self._start_tasks()

        self._initialized = True
        logger.info("TaxEngine initialized (payment store: %s)", self._config.payments.store)

    def _can_render(self, export_type: ExportType) -> bool:
        """Payments are only taken for exports a renderer can deliver."""
        return self._export_service is not None and self._export_service.has_renderer(export_type)

    async def _start_tasks(self) -> None:
        from functools import partial

        from solana_tax.taskmanager.manager import CronJob, TaskManager
        from solana_tax.taskmanager.tasks import (
            task_expire_payments,
            task_purge_payments,
            task_refresh_prices,
        )

        payments = self._config.payments
        self._task_manager = TaskManager(metrics=self._metrics)
        self._task_manager.register(
            "refresh_prices",
            CronJob(
                handler=partial(task_refresh_prices, self),
                period=self._config.prices.refresh_interval,
                run_at_start=True,
            ),
        )
        self._task_manager.register(
            "expire_payments",
            CronJob(
                handler=partial(task_expire_payments, self),
                period=payments.expiry_sweep_period,
            ),
        )
        self._task_manager.register(
            "purge_payments",
            CronJob(handler=partial(task_purge_payments, self), period=payments.purge_period),
        )
        await self._task_manager.start()

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        # Stop task manager first (depends on services)
        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        self._export_service = None
        self._transaction_service = None
        self._payment_gate = None
        self._classifier = None
        self._price_table = None
        self._metrics = None

        if self._chain is not None and self._owns_chain:
            await self._chain.close()
            self._chain = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._initialized = False
        logger.info("TaxEngine closed")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def chain(self) -> ChainService:
        if self._chain is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._chain

    @property
    def datastore(self) -> Datastore | None:
        """The datastore (None unless payments are kept in the database)."""
        return self._datastore

    @property
    def price_table(self) -> TokenPriceTable:
        if self._price_table is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._price_table

    @property
    def classifier(self) -> TransactionClassifier:
        if self._classifier is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._classifier

    @property
    def payment_gate(self) -> PaymentGate:
        if self._payment_gate is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._payment_gate

    @property
    def transaction_service(self) -> TransactionService:
        if self._transaction_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._transaction_service

    @property
    def export_service(self) -> ExportService:
        if self._export_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._export_service

    @property
    def metrics(self) -> EngineMetrics | None:
        """Engine metrics (None if disabled or not initialized)."""
        return self._metrics

    @property
    def task_manager(self) -> TaskManager | None:
        """Task manager (None if cron jobs are disabled)."""
        return self._task_manager

    async def health_check(self) -> dict[str, str]:
        """Check health status of all engine components.

        Returns:
            Component → 'ok', 'error', 'disabled' or 'not_initialized'.
        """
        if not self._initialized:
            return {"engine": "not_initialized"}

        status = {"engine": "ok"}
        if self._chain is not None and getattr(self._chain, "is_connected", True):
            status["chain"] = "ok"
        else:
            status["chain"] = "error"

        if self._config.payments.store is PaymentStoreBackend.DATABASE:
            ok = self._datastore is not None and self._datastore.is_open
            status["datastore"] = "ok" if ok else "error"
        else:
            status["datastore"] = "disabled"

        if self._task_manager is None:
            status["tasks"] = "disabled"
        else:
            status["tasks"] = "ok" if self._task_manager.is_running else "error"
        return status
