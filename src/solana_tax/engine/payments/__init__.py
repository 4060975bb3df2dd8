"""Pay-to-export gate and its request stores."""

from __future__ import annotations

from solana_tax.engine.payments.gate import PaymentChain, PaymentGate
from solana_tax.engine.payments.store import (
    DatastorePaymentStore,
    MemoryPaymentStore,
    PaymentStore,
)

__all__ = [
    "DatastorePaymentStore",
    "MemoryPaymentStore",
    "PaymentChain",
    "PaymentGate",
    "PaymentStore",
]
