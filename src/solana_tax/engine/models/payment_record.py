"""PaymentRequestRecord model — persisted payment requests."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from solana_tax.engine.models.base import Base
from solana_tax.engine.models.payment import (
    DateRange,
    ExportType,
    PaymentRequest,
    PaymentStatus,
)
from solana_tax.utils.clock import as_utc


def _utc_or_none(value: datetime | None) -> datetime | None:
    return None if value is None else as_utc(value)


class PaymentRequestRecord(Base):
    """Database row backing a :class:`PaymentRequest`.

    SQLite drops tzinfo on round-trip, so every datetime read back is
    re-tagged as UTC in :meth:`to_model`.
    """

    __tablename__ = "payment_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Request UUID")
    export_type: Mapped[str] = mapped_column(String(8), nullable=False, comment="csv | pdf")
    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    range_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    range_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount_lamports: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payment_address: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, index=True, comment="pending | paid | expired | failed"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    transaction_signature: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True, comment="Settling signature"
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @classmethod
    def from_model(cls, request: PaymentRequest) -> PaymentRequestRecord:
        record = cls(id=request.id)
        record.update_from(request)
        return record

    def update_from(self, request: PaymentRequest) -> None:
        """Copy every mutable field from *request* onto this row."""
        self.export_type = request.export_type.value
        self.wallet_address = request.wallet_address
        self.range_start = request.date_range.start
        self.range_end = request.date_range.end
        self.amount_lamports = request.amount_lamports
        self.payment_address = request.payment_address
        self.status = request.status.value
        self.created_at = request.created_at
        self.expires_at = request.expires_at
        self.transaction_signature = request.transaction_signature
        self.paid_at = request.paid_at
        self.consumed_at = request.consumed_at

    def to_model(self) -> PaymentRequest:
        return PaymentRequest(
            id=self.id,
            export_type=ExportType(self.export_type),
            wallet_address=self.wallet_address,
            date_range=DateRange(start=as_utc(self.range_start), end=as_utc(self.range_end)),
            amount_lamports=self.amount_lamports,
            payment_address=self.payment_address,
            status=PaymentStatus(self.status),
            created_at=as_utc(self.created_at),
            expires_at=as_utc(self.expires_at),
            transaction_signature=self.transaction_signature,
            paid_at=_utc_or_none(self.paid_at),
            consumed_at=_utc_or_none(self.consumed_at),
        )

    def __repr__(self) -> str:
        return f"<PaymentRequestRecord id={self.id} status={self.status}>"
