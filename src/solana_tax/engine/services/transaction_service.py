"""Transaction service — fetch, classify and summarize wallet history.

Implements the read side of the engine:

1. List the wallet's most recent signatures (bounded by ``signature_limit``)
2. Keep those whose block time falls inside the requested range
3. Fetch each envelope concurrently, each under its own timeout
4. Classify, drop unreportable results, aggregate on demand
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from solana_tax.engine.models.transaction import LAMPORTS_PER_SOL
from solana_tax.engine.summary import Summary, aggregate
from solana_tax.engine.validation import validate_date_range, validate_wallet_address
from solana_tax.errors.tax_errors import TaxError

if TYPE_CHECKING:
    from datetime import date, datetime

    from solana_tax.chain.rpc.models import RawTransactionEnvelope, SignatureInfo
    from solana_tax.engine.client import TaxEngine
    from solana_tax.engine.models.payment import DateRange
    from solana_tax.engine.models.transaction import Transaction

    DateInput = date | datetime | str | None

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 10


@dataclass(frozen=True)
class WalletOverview:
    """Balance, classified history and summary for one wallet and range."""

    address: str
    date_range: DateRange
    balance: Decimal
    transactions: list[Transaction]
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "dateRange": self.date_range.to_dict(),
            "balance": str(self.balance),
            "transactions": [tx.to_dict() for tx in self.transactions],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class ExportPreview:
    """First rows of a prospective export plus the full row count."""

    address: str
    date_range: DateRange
    preview: list[Transaction]
    total_count: int

    @property
    def estimated_size(self) -> dict[str, str]:
        """Rough export size per format: half a KB per CSV row, 2 KB per PDF row."""
        return {
            "csv": f"{(self.total_count + 1) // 2}KB",
            "pdf": f"{self.total_count * 2}KB",
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "dateRange": self.date_range.to_dict(),
            "preview": [tx.to_dict() for tx in self.preview],
            "totalCount": self.total_count,
            "estimatedSize": self.estimated_size,
        }


class TransactionService:
    """Wallet history queries backed by the engine's chain and classifier."""

    def __init__(self, engine: TaxEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_transactions(
        self, address: str, start: DateInput, end: DateInput
    ) -> list[Transaction]:
        """Classified transactions for *address* within [start, end], newest first.

        An empty list is a valid result.

        Raises:
            TaxError: Validation errors, or ``RPCError`` if the signature
                listing itself fails.
        """
        wallet = validate_wallet_address(address)
        date_range = validate_date_range(start, end, max_days=self._engine.config.max_range_days)
        return await self.fetch_range(wallet, date_range)

    async def get_summary(self, address: str, start: DateInput, end: DateInput) -> Summary:
        return aggregate(await self.get_transactions(address, start, end))

    async def get_wallet_balance(self, address: str) -> Decimal:
        """Current native balance of *address* in SOL."""
        wallet = validate_wallet_address(address)
        lamports = await self._engine.chain.fetch_balance(wallet)
        return Decimal(lamports) / LAMPORTS_PER_SOL

    async def get_overview(self, address: str, start: DateInput, end: DateInput) -> WalletOverview:
        wallet = validate_wallet_address(address)
        date_range = validate_date_range(start, end, max_days=self._engine.config.max_range_days)
        balance, transactions = await asyncio.gather(
            self.get_wallet_balance(wallet),
            self.fetch_range(wallet, date_range),
        )
        return WalletOverview(
            address=wallet,
            date_range=date_range,
            balance=balance,
            transactions=transactions,
            summary=aggregate(transactions),
        )

    async def get_preview(self, address: str, start: DateInput, end: DateInput) -> ExportPreview:
        """What an export would contain; needs no payment."""
        wallet = validate_wallet_address(address)
        date_range = validate_date_range(start, end, max_days=self._engine.config.max_range_days)
        transactions = await self.fetch_range(wallet, date_range)
        return ExportPreview(
            address=wallet,
            date_range=date_range,
            preview=transactions[:PREVIEW_SIZE],
            total_count=len(transactions),
        )

    # ------------------------------------------------------------------
    # Fetch pipeline (inputs already validated)
    # ------------------------------------------------------------------

    async def fetch_range(self, wallet: str, date_range: DateRange) -> list[Transaction]:
        metrics = self._engine.metrics
        if metrics is not None:
            with metrics.track_fetch_transactions():
                return await self._fetch_range(wallet, date_range)
        return await self._fetch_range(wallet, date_range)

    async def _fetch_range(self, wallet: str, date_range: DateRange) -> list[Transaction]:
        rpc_config = self._engine.config.rpc
        limit = rpc_config.signature_limit
        signatures = await self._engine.chain.fetch_signatures(wallet, limit)
        if len(signatures) >= limit:
            logger.warning(
                "Signature list for %s hit the %d limit; older history is truncated",
                wallet,
                limit,
            )

        in_range = [
            sig
            for sig in signatures
            if sig.block_time is not None and date_range.contains(sig.block_time)
        ]
        logger.debug("%d of %d signatures for %s in range", len(in_range), len(signatures), wallet)

        semaphore = asyncio.Semaphore(rpc_config.fetch_concurrency)
        envelopes = await asyncio.gather(
            *(self._fetch_envelope(sig, semaphore) for sig in in_range)
        )

        classifier = self._engine.classifier
        transactions: list[Transaction] = []
        for envelope in envelopes:
            if envelope is None:
                continue
            try:
                tx = classifier.classify(envelope, wallet)
            except Exception:
                logger.exception("Could not classify %s; dropping it", envelope.signature)
                tx = None
            if tx is None:
                self._dropped("unclassifiable")
                continue
            if not tx.is_reportable:
                continue
            if self._engine.metrics is not None:
                self._engine.metrics.record_classified(tx.type.value)
            transactions.append(tx)
        return transactions

    async def _fetch_envelope(
        self, sig: SignatureInfo, semaphore: asyncio.Semaphore
    ) -> RawTransactionEnvelope | None:
        """One envelope, or None if it could not be fetched in time."""
        timeout = self._engine.config.rpc.envelope_timeout
        async with semaphore:
            try:
                envelope = await asyncio.wait_for(
                    self._engine.chain.fetch_transaction(sig.signature), timeout
                )
            except TimeoutError:
                logger.warning("Timed out fetching %s after %.1fs", sig.signature, timeout)
                self._dropped("timeout")
                return None
            except TaxError as exc:
                logger.warning("Dropping %s: %s", sig.signature, exc.message)
                self._dropped("error")
                return None
            except Exception:
                logger.exception("Unexpected error fetching %s; dropping it", sig.signature)
                self._dropped("error")
                return None
        if envelope is None:
            logger.warning("Transaction %s not found", sig.signature)
            self._dropped("missing")
        return envelope

    def _dropped(self, reason: str) -> None:
        if self._engine.metrics is not None:
            self._engine.metrics.record_dropped(reason)
