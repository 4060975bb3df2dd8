"""Transaction — one categorized, valued on-chain transaction."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

LAMPORTS_PER_SOL = Decimal(1_000_000_000)


class TxType(enum.StrEnum):
    """Semantic category assigned by the classifier."""

    BUY = "buy"
    SELL = "sell"
    SWAP = "swap"
    LP = "lp"
    AIRDROP = "airdrop"
    UNKNOWN = "unknown"


class TxStatus(enum.StrEnum):
    """Chain-level execution result."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Transaction:
    """A classified transaction, immutable once produced.

    ``amount`` is always a magnitude in native units of ``token``; the
    direction lives in ``type``. ``value`` is derived as ``amount * price``
    and cannot be passed in.
    """

    id: str
    block_time: int
    slot: int
    fee: int  # lamports
    status: TxStatus
    type: TxType = TxType.UNKNOWN
    token: str = "SOL"
    token_mint: str | None = None
    amount: Decimal = Decimal(0)
    price: Decimal = Decimal(0)
    swap_to: str | None = None
    swap_to_amount: Decimal | None = None
    program_id: str | None = None
    value: Decimal = field(init=False)

    def __post_init__(self) -> None:
        if self.amount < 0:
            msg = f"amount must be non-negative, got {self.amount}"
            raise ValueError(msg)
        if self.price < 0:
            msg = f"price must be non-negative, got {self.price}"
            raise ValueError(msg)
        object.__setattr__(self, "value", self.amount * self.price)

    @property
    def signature(self) -> str:
        return self.id

    @property
    def fee_sol(self) -> Decimal:
        """Fee converted from lamports to SOL."""
        return Decimal(self.fee) / LAMPORTS_PER_SOL

    @property
    def is_reportable(self) -> bool:
        """Successful transactions left ``unknown`` are dust and not reported."""
        return self.type is not TxType.UNKNOWN or self.status is TxStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict (decimals as strings)."""
        return {
            "id": self.id,
            "signature": self.id,
            "blockTime": self.block_time,
            "slot": self.slot,
            "fee": self.fee,
            "status": self.status.value,
            "type": self.type.value,
            "token": self.token,
            "tokenMint": self.token_mint,
            "amount": str(self.amount),
            "swapTo": self.swap_to,
            "swapToAmount": None if self.swap_to_amount is None else str(self.swap_to_amount),
            "price": str(self.price),
            "value": str(self.value),
            "programId": self.program_id,
        }
