"""PaymentGate — pay-to-export request state machine.

Lifecycle::

    pending ──(matching transfer on chain)──▶ paid ──(export)──▶ paid + consumed
       │
       └──(now > expires_at)──▶ expired

``failed`` is only assigned at creation time, when the service itself
cannot accept payments. Every read-decide-write on one request runs under
that request's ``asyncio.Lock``; settling additionally takes a gate-wide
claim lock so one on-chain signature pays for at most one request.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol

from solana_tax.engine.models.payment import PaymentRequest, PaymentStatus
from solana_tax.engine.payments.store import MemoryPaymentStore
from solana_tax.engine.validation import (
    is_valid_wallet_address,
    validate_export_type,
    validate_wallet_address,
)
from solana_tax.errors.definitions import (
    ErrPaymentNotFound,
    ErrPaymentRequired,
    ErrRendererUnavailable,
)
from solana_tax.errors.tax_errors import TaxError
from solana_tax.utils.clock import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable

    from solana_tax.chain.rpc.models import RawTransactionEnvelope, SignatureInfo
    from solana_tax.config.settings import PaymentConfig
    from solana_tax.engine.models.payment import DateRange, ExportType
    from solana_tax.engine.payments.store import PaymentStore
    from solana_tax.metrics.collector import EngineMetrics
    from solana_tax.utils.clock import Clock

logger = logging.getLogger(__name__)


class PaymentChain(Protocol):
    """Chain queries the gate needs to verify a transfer."""

    async def fetch_recent_incoming_transfers(
        self, address: str, limit: int
    ) -> list[SignatureInfo]: ...

    async def fetch_transaction(self, signature: str) -> RawTransactionEnvelope | None: ...


def _new_request_id() -> str:
    return str(uuid.uuid4())


class PaymentGate:
    """Creates, settles, expires and consumes payment requests.

    Usage::

        gate = PaymentGate(config.payments, chain)
        request = await gate.create("csv", wallet, date_range)
        request = await gate.check_status(request.id)  # poll until paid
        await gate.authorize_export(request.id, wallet, "csv")
    """

    def __init__(
        self,
        config: PaymentConfig,
        chain: PaymentChain,
        *,
        store: PaymentStore | None = None,
        clock: Clock = utc_now,
        metrics: EngineMetrics | None = None,
        id_factory: Callable[[], str] = _new_request_id,
        exportable: Callable[[ExportType], bool] | None = None,
    ) -> None:
        self._config = config
        self._chain = chain
        self._store: PaymentStore = store if store is not None else MemoryPaymentStore()
        self._clock = clock
        self._metrics = metrics
        self._id_factory = id_factory
        self._exportable = exportable
        self._locks: dict[str, asyncio.Lock] = {}
        self._claim_lock = asyncio.Lock()

    @property
    def store(self) -> PaymentStore:
        return self._store

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._config.ttl_seconds)

    @property
    def retention(self) -> timedelta:
        return timedelta(seconds=self._config.retention_seconds)

    def _lock_for(self, request_id: str) -> asyncio.Lock:
        lock = self._locks.get(request_id)
        if lock is None:
            lock = self._locks[request_id] = asyncio.Lock()
        return lock

    def _record(self, status: PaymentStatus) -> None:
        if self._metrics is not None:
            self._metrics.record_payment(status.value)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(
        self,
        export_type: ExportType | str,
        wallet_address: str,
        date_range: DateRange,
    ) -> PaymentRequest:
        """Open a new pending request for one export attempt.

        Raises:
            TaxError: On an invalid wallet address or export type, or
                ``ErrRendererUnavailable`` when nothing could deliver the
                export once paid.
        """
        kind = validate_export_type(export_type)
        if self._exportable is not None and not self._exportable(kind):
            raise ErrRendererUnavailable
        wallet = validate_wallet_address(wallet_address)
        now = self._clock()

        status = PaymentStatus.PENDING
        if not is_valid_wallet_address(self._config.payment_address):
            logger.error(
                "Configured payment address %r is invalid; request cannot be paid",
                self._config.payment_address,
            )
            status = PaymentStatus.FAILED

        request = PaymentRequest(
            id=self._id_factory(),
            export_type=kind,
            wallet_address=wallet,
            date_range=date_range,
            amount_lamports=self._config.amount_lamports,
            payment_address=self._config.payment_address,
            status=status,
            created_at=now,
            expires_at=now + self.ttl,
        )
        await self._store.add(request)
        self._record(status)
        logger.info(
            "Created %s payment request %s for %s (%s)",
            kind,
            request.id,
            wallet,
            status,
        )
        return request

    async def get(self, request_id: str) -> PaymentRequest | None:
        """Plain lookup: no transition, no chain query."""
        return await self._store.get(request_id)

    async def check_status(self, request_id: str) -> PaymentRequest:
        """Poll one request, settling or expiring it when due.

        Safe to call repeatedly and concurrently; chain failures leave the
        request pending.

        Raises:
            TaxError: ``ErrPaymentNotFound`` for an unknown id.
        """
        async with self._lock_for(request_id):
            request = await self._store.get(request_id)
            if request is None:
                self._locks.pop(request_id, None)
                raise ErrPaymentNotFound
            if not request.is_pending:
                return request

            now = self._clock()
            if request.is_past_expiry(now):
                return await self._expire(request)

            if self._metrics is not None:
                with self._metrics.track_check_payment():
                    return await self._settle(request)
            return await self._settle(request)

    async def authorize_export(
        self,
        request_id: str | None,
        wallet_address: str,
        export_type: ExportType | str,
    ) -> PaymentRequest:
        """Consume a paid request for one export.

        Runs before any transaction fetch so unpaid exports cost nothing.

        Raises:
            TaxError: ``ErrPaymentRequired`` unless the request exists, is
                paid, matches wallet and export type, and was not consumed.
        """
        kind = validate_export_type(export_type)
        if not request_id:
            raise ErrPaymentRequired
        async with self._lock_for(request_id):
            request = await self._store.get(request_id)
            if request is None:
                self._locks.pop(request_id, None)
                logger.info("Refused %s export for unknown request %s", kind, request_id)
                raise ErrPaymentRequired
            if (
                request.status is not PaymentStatus.PAID
                or request.consumed_at is not None
                or request.wallet_address != wallet_address
                or request.export_type is not kind
            ):
                logger.info(
                    "Refused %s export for %s (request %s)", kind, wallet_address, request_id
                )
                raise ErrPaymentRequired
            consumed = replace(request, consumed_at=self._clock())
            await self._store.save(consumed)
            return consumed

    async def release_export(self, request_id: str) -> None:
        """Undo :meth:`authorize_export` after the export itself failed."""
        async with self._lock_for(request_id):
            request = await self._store.get(request_id)
            if request is None:
                self._locks.pop(request_id, None)
                return
            if request.consumed_at is None:
                return
            await self._store.save(replace(request, consumed_at=None))
            logger.info("Released payment request %s after a failed export", request_id)

    async def expire_stale(self) -> int:
        """Expire every pending request past its deadline.

        Returns:
            Number of requests expired by this sweep.
        """
        now = self._clock()
        expired = 0
        for candidate in await self._store.list_pending():
            if not candidate.is_past_expiry(now):
                continue
            async with self._lock_for(candidate.id):
                # a concurrent poll may have settled it meanwhile
                current = await self._store.get(candidate.id)
                if current is None or not current.is_pending:
                    continue
                await self._expire(current)
                expired += 1
        return expired

    async def purge(self) -> int:
        """Delete non-pending requests created before the retention window.

        Returns:
            Number of requests deleted.
        """
        cutoff = self._clock() - self.retention
        removed = await self._store.purge(created_before=cutoff)
        for request_id in removed:
            self._locks.pop(request_id, None)
        return len(removed)

    # ------------------------------------------------------------------
    # Transitions (caller holds the request lock)
    # ------------------------------------------------------------------

    async def _expire(self, request: PaymentRequest) -> PaymentRequest:
        expired = replace(request, status=PaymentStatus.EXPIRED)
        await self._store.save(expired)
        self._record(PaymentStatus.EXPIRED)
        logger.info("Payment request %s expired", request.id)
        return expired

    async def _settle(self, request: PaymentRequest) -> PaymentRequest:
        try:
            candidates = await self._chain.fetch_recent_incoming_transfers(
                request.payment_address, self._config.lookback
            )
        except TaxError as exc:
            logger.warning("Payment check for %s failed: %s", request.id, exc.message)
            return request

        created_ts = request.created_at.timestamp()
        for sig in candidates:
            if sig.failed or sig.block_time is None or sig.block_time <= created_ts:
                continue
            if not await self._transfer_covers(request, sig.signature):
                continue
            async with self._claim_lock:
                if await self._store.find_by_signature(sig.signature) is not None:
                    logger.debug("Signature %s already settled another request", sig.signature)
                    continue
                paid = replace(
                    request,
                    status=PaymentStatus.PAID,
                    transaction_signature=sig.signature,
                    paid_at=self._clock(),
                )
                await self._store.save(paid)
            self._record(PaymentStatus.PAID)
            logger.info("Payment request %s paid by %s", request.id, sig.signature)
            return paid
        return request

    async def _transfer_covers(self, request: PaymentRequest, signature: str) -> bool:
        """True if *signature* moved at least the requested lamports to the service."""
        try:
            envelope = await self._chain.fetch_transaction(signature)
        except TaxError as exc:
            logger.warning("Could not load payment candidate %s: %s", signature, exc.message)
            return False
        if envelope is None or envelope.failed:
            return False
        received = envelope.lamport_delta(request.payment_address)
        return received is not None and received >= request.amount_lamports
