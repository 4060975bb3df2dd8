"""Summary aggregation over classified transactions.

``aggregate`` folds any iterable of transactions into counts and USD
totals. Every total is a ``Decimal`` sum, so permuting the input never
changes a result; bucket keys are sorted on serialization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import TYPE_CHECKING, Any

from solana_tax.engine.models.transaction import LAMPORTS_PER_SOL, TxStatus, TxType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from solana_tax.engine.models.transaction import Transaction


@dataclass
class Bucket:
    """Count, native amount and USD value for one group of transactions."""

    count: int = 0
    amount: Decimal = Decimal(0)
    value: Decimal = Decimal(0)

    def add(self, tx: Transaction) -> None:
        self.count += 1
        self.amount += tx.amount
        self.value += tx.value

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "amount": str(self.amount), "value": str(self.value)}


@dataclass
class TokenBucket(Bucket):
    """Per-token totals with a nested per-type breakdown."""

    by_type: dict[str, Bucket] = field(default_factory=dict)

    def add(self, tx: Transaction) -> None:
        super().add(tx)
        self.by_type.setdefault(tx.type.value, Bucket()).add(tx)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "byType": {k: self.by_type[k].to_dict() for k in sorted(self.by_type)},
        }


@dataclass
class Summary:
    """Run-level statistics for a set of transactions."""

    total_transactions: int = 0
    successful_transactions: int = 0
    failed_transactions: int = 0
    total_fees_lamports: int = 0
    total_value: Decimal = Decimal(0)
    total_bought: Decimal = Decimal(0)
    total_sold: Decimal = Decimal(0)
    total_swapped: Decimal = Decimal(0)
    total_liquidity: Decimal = Decimal(0)
    total_airdropped: Decimal = Decimal(0)
    by_type: dict[str, Bucket] = field(default_factory=dict)
    by_token: dict[str, TokenBucket] = field(default_factory=dict)

    @property
    def total_fees(self) -> Decimal:
        """Total fees in SOL."""
        return Decimal(self.total_fees_lamports) / LAMPORTS_PER_SOL

    @property
    def net_gain(self) -> Decimal:
        return self.total_sold - self.total_bought

    @property
    def total_volume(self) -> Decimal:
        return self.total_bought + self.total_sold + self.total_swapped

    @property
    def average_value(self) -> Decimal:
        """Mean USD value per transaction, zero for an empty run."""
        if not self.total_transactions:
            return Decimal(0)
        return self.total_value / self.total_transactions

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTransactions": self.total_transactions,
            "successfulTransactions": self.successful_transactions,
            "failedTransactions": self.failed_transactions,
            "totalFees": str(self.total_fees),
            "totalValue": str(self.total_value),
            "totalBought": str(self.total_bought),
            "totalSold": str(self.total_sold),
            "totalSwapped": str(self.total_swapped),
            "totalLiquidity": str(self.total_liquidity),
            "totalAirdropped": str(self.total_airdropped),
            "netGain": str(self.net_gain),
            "totalVolume": str(self.total_volume),
            "averageValue": str(self.average_value),
            "byType": {k: self.by_type[k].to_dict() for k in sorted(self.by_type)},
            "byToken": {k: self.by_token[k].to_dict() for k in sorted(self.by_token)},
        }


_TYPE_TOTALS = {
    TxType.BUY: "total_bought",
    TxType.SELL: "total_sold",
    TxType.SWAP: "total_swapped",
    TxType.LP: "total_liquidity",
    TxType.AIRDROP: "total_airdropped",
}


def aggregate(transactions: Iterable[Transaction]) -> Summary:
    """Fold *transactions* into a :class:`Summary` (empty input → all zeros)."""
    summary = Summary()
    with localcontext() as ctx:
        # wide enough that sums never round
        ctx.prec = 80
        for tx in transactions:
            _fold(summary, tx)
    return summary


def _fold(summary: Summary, tx: Transaction) -> None:
    summary.total_transactions += 1
    if tx.status is TxStatus.SUCCESS:
        summary.successful_transactions += 1
    else:
        summary.failed_transactions += 1
    summary.total_fees_lamports += tx.fee
    summary.total_value += tx.value

    total_attr = _TYPE_TOTALS.get(tx.type)
    if total_attr is not None:
        setattr(summary, total_attr, getattr(summary, total_attr) + tx.value)

    summary.by_type.setdefault(tx.type.value, Bucket()).add(tx)
    summary.by_token.setdefault(tx.token, TokenBucket()).add(tx)
