"""Engine models — classified transactions and payment requests."""

from __future__ import annotations

from solana_tax.engine.models.base import Base
from solana_tax.engine.models.payment import (
    DateRange,
    ExportType,
    PaymentRequest,
    PaymentStatus,
)
from solana_tax.engine.models.payment_record import PaymentRequestRecord
from solana_tax.engine.models.transaction import (
    LAMPORTS_PER_SOL,
    Transaction,
    TxStatus,
    TxType,
)

ALL_MODELS: list[type[Base]] = [PaymentRequestRecord]

__all__ = [
    "ALL_MODELS",
    "LAMPORTS_PER_SOL",
    "Base",
    "DateRange",
    "ExportType",
    "PaymentRequest",
    "PaymentRequestRecord",
    "PaymentStatus",
    "Transaction",
    "TxStatus",
    "TxType",
]
