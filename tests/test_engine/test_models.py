"""Tests for engine models — Transaction, PaymentRequest, PaymentRequestRecord."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from solana_tax.engine.models import (
    DateRange,
    ExportType,
    PaymentRequest,
    PaymentRequestRecord,
    PaymentStatus,
    Transaction,
    TxStatus,
    TxType,
)
from tests.helpers import BASE_TIME, BASE_TS, SERVICE_ADDRESS, WALLET


def _request(**overrides) -> PaymentRequest:
    fields = {
        "id": "req-1",
        "export_type": ExportType.CSV,
        "wallet_address": WALLET,
        "date_range": DateRange(
            start=datetime(2024, 1, 1, tzinfo=UTC),
            end=datetime(2024, 1, 31, 23, 59, 59, tzinfo=UTC),
        ),
        "amount_lamports": 100_000_000,
        "payment_address": SERVICE_ADDRESS,
        "status": PaymentStatus.PENDING,
        "created_at": BASE_TIME,
        "expires_at": BASE_TIME + timedelta(minutes=15),
    }
    fields.update(overrides)
    return PaymentRequest(**fields)


class TestTransaction:
    def test_value_derived(self):
        tx = Transaction(
            id="s", block_time=BASE_TS, slot=1, fee=5000, status=TxStatus.SUCCESS,
            type=TxType.BUY, amount=Decimal("2.5"), price=Decimal("4"),
        )
        assert tx.value == Decimal("10.0")
        assert tx.signature == "s"
        assert tx.fee_sol == Decimal("0.000005")

    def test_value_not_settable(self):
        with pytest.raises(TypeError):
            Transaction(id="s", block_time=0, slot=0, fee=0, status=TxStatus.SUCCESS, value=1)

    @pytest.mark.parametrize("field", ["amount", "price"])
    def test_negative_rejected(self, field):
        with pytest.raises(ValueError, match=field):
            Transaction(
                id="s", block_time=0, slot=0, fee=0, status=TxStatus.SUCCESS,
                **{field: Decimal("-1")},
            )

    def test_reportable(self):
        base = Transaction(id="s", block_time=0, slot=0, fee=0, status=TxStatus.SUCCESS)
        assert base.is_reportable is False
        assert replace(base, status=TxStatus.FAILED).is_reportable is True
        assert replace(base, type=TxType.SELL).is_reportable is True

    def test_to_dict(self):
        tx = Transaction(
            id="s", block_time=BASE_TS, slot=7, fee=5000, status=TxStatus.SUCCESS,
            type=TxType.SWAP, token="USDC", amount=Decimal("500"), price=Decimal("1"),
            swap_to="SOL", swap_to_amount=Decimal("5"),
        )
        data = tx.to_dict()
        assert data["type"] == "swap"
        assert data["amount"] == "500"
        assert data["value"] == "500"
        assert data["swapToAmount"] == "5"
        assert data["blockTime"] == BASE_TS


class TestPaymentRequest:
    def test_amount_in_sol(self):
        assert _request().amount == Decimal("0.1")

    def test_expiry(self):
        req = _request()
        assert not req.is_past_expiry(req.expires_at)
        assert req.is_past_expiry(req.expires_at + timedelta(seconds=1))

    def test_public_and_status_dicts(self):
        req = _request(status=PaymentStatus.PAID, transaction_signature="sig", paid_at=BASE_TIME)
        public = req.public_dict()
        assert public == {
            "id": "req-1",
            "amount": "0.1",
            "paymentAddress": SERVICE_ADDRESS,
            "status": "paid",
            "expiresAt": "2024-03-01T12:15:00+00:00",
            "exportType": "csv",
        }
        status = req.status_dict()
        assert status["transactionSignature"] == "sig"
        assert status["paidAt"] == "2024-03-01T12:00:00+00:00"
        assert "walletAddress" not in status
        assert req.to_dict()["walletAddress"] == WALLET

    def test_date_range_round_trip(self):
        rng = _request().date_range
        assert DateRange.from_dict(rng.to_dict()) == rng


class TestPaymentRequestRecord:
    def test_round_trip(self):
        req = _request(consumed_at=BASE_TIME)
        assert PaymentRequestRecord.from_model(req).to_model() == req

    def test_naive_datetimes_tagged_utc(self):
        record = PaymentRequestRecord.from_model(_request())
        record.created_at = record.created_at.replace(tzinfo=None)
        assert record.to_model().created_at.tzinfo is UTC

    def test_update_from(self):
        record = PaymentRequestRecord.from_model(_request())
        record.update_from(_request(status=PaymentStatus.EXPIRED))
        assert record.status == "expired"
        assert "expired" in repr(record)
