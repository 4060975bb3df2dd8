"""PaymentRequest — a pay-to-export request and its lifecycle states."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from solana_tax.engine.models.transaction import LAMPORTS_PER_SOL
from solana_tax.utils.clock import as_utc


class PaymentStatus(enum.StrEnum):
    """Lifecycle: PENDING → PAID | EXPIRED. FAILED only at creation time."""

    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


class ExportType(enum.StrEnum):
    """Supported export formats."""

    CSV = "csv"
    PDF = "pdf"


@dataclass(frozen=True)
class DateRange:
    """Inclusive UTC date range."""

    start: datetime
    end: datetime

    def contains(self, unix_seconds: int) -> bool:
        return self.start.timestamp() <= unix_seconds <= self.end.timestamp()

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DateRange:
        return cls(
            start=as_utc(datetime.fromisoformat(data["start"])),
            end=as_utc(datetime.fromisoformat(data["end"])),
        )


@dataclass(frozen=True)
class PaymentRequest:
    """A payment request owned by the payment gate.

    Instances are snapshots; the gate stores a new instance on every
    transition (``dataclasses.replace``).
    """

    id: str
    export_type: ExportType
    wallet_address: str
    date_range: DateRange
    amount_lamports: int
    payment_address: str
    status: PaymentStatus
    created_at: datetime
    expires_at: datetime
    transaction_signature: str | None = None
    paid_at: datetime | None = None
    consumed_at: datetime | None = None

    @property
    def amount(self) -> Decimal:
        """Requested amount in SOL."""
        return Decimal(self.amount_lamports) / LAMPORTS_PER_SOL

    @property
    def is_pending(self) -> bool:
        return self.status is PaymentStatus.PENDING

    def is_past_expiry(self, now: datetime) -> bool:
        return now > self.expires_at

    def public_dict(self) -> dict[str, Any]:
        """Fields returned to the payer when the request is created."""
        return {
            "id": self.id,
            "amount": str(self.amount),
            "paymentAddress": self.payment_address,
            "status": self.status.value,
            "expiresAt": self.expires_at.isoformat(),
            "exportType": self.export_type.value,
        }

    def status_dict(self) -> dict[str, Any]:
        """Fields returned by status polling."""
        return {
            **self.public_dict(),
            "transactionSignature": self.transaction_signature,
            "paidAt": None if self.paid_at is None else self.paid_at.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.status_dict(),
            "walletAddress": self.wallet_address,
            "dateRange": self.date_range.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "consumedAt": None if self.consumed_at is None else self.consumed_at.isoformat(),
        }
