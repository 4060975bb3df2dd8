"""Payment request stores — in-process dict or async SQLAlchemy table.

Stores hold immutable :class:`PaymentRequest` snapshots keyed by id. They
do no locking of their own; the payment gate serializes transitions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete, select

from solana_tax.engine.models.payment import PaymentStatus
from solana_tax.engine.models.payment_record import PaymentRequestRecord

if TYPE_CHECKING:
    from datetime import datetime

    from solana_tax.datastore.client import Datastore
    from solana_tax.engine.models.payment import PaymentRequest


class PaymentStore(Protocol):
    """Storage contract used by :class:`~solana_tax.engine.payments.gate.PaymentGate`."""

    async def add(self, request: PaymentRequest) -> None: ...

    async def get(self, request_id: str) -> PaymentRequest | None: ...

    async def save(self, request: PaymentRequest) -> None: ...

    async def list_pending(self) -> list[PaymentRequest]: ...

    async def find_by_signature(self, signature: str) -> PaymentRequest | None: ...

    async def purge(self, *, created_before: datetime) -> list[str]: ...


class MemoryPaymentStore:
    """Process-memory store; everything is lost on restart."""

    def __init__(self) -> None:
        self._requests: dict[str, PaymentRequest] = {}

    async def add(self, request: PaymentRequest) -> None:
        self._requests[request.id] = request

    async def get(self, request_id: str) -> PaymentRequest | None:
        return self._requests.get(request_id)

    async def save(self, request: PaymentRequest) -> None:
        self._requests[request.id] = request

    async def list_pending(self) -> list[PaymentRequest]:
        return [r for r in self._requests.values() if r.status is PaymentStatus.PENDING]

    async def find_by_signature(self, signature: str) -> PaymentRequest | None:
        for request in self._requests.values():
            if request.transaction_signature == signature:
                return request
        return None

    async def purge(self, *, created_before: datetime) -> list[str]:
        """Delete non-pending requests created before *created_before*."""
        doomed = [
            r.id
            for r in self._requests.values()
            if r.status is not PaymentStatus.PENDING and r.created_at < created_before
        ]
        for request_id in doomed:
            del self._requests[request_id]
        return doomed

    def __len__(self) -> int:
        return len(self._requests)


class DatastorePaymentStore:
    """Payment requests persisted in the ``payment_requests`` table."""

    def __init__(self, datastore: Datastore) -> None:
        self._datastore = datastore

    async def add(self, request: PaymentRequest) -> None:
        async with self._datastore.session() as session:
            session.add(PaymentRequestRecord.from_model(request))
            await session.commit()

    async def get(self, request_id: str) -> PaymentRequest | None:
        async with self._datastore.session() as session:
            record = await session.get(PaymentRequestRecord, request_id)
            return None if record is None else record.to_model()

    async def save(self, request: PaymentRequest) -> None:
        async with self._datastore.session() as session:
            record = await session.get(PaymentRequestRecord, request.id)
            if record is None:
                session.add(PaymentRequestRecord.from_model(request))
            else:
                record.update_from(request)
            await session.commit()

    async def list_pending(self) -> list[PaymentRequest]:
        async with self._datastore.session() as session:
            result = await session.execute(
                select(PaymentRequestRecord).where(
                    PaymentRequestRecord.status == PaymentStatus.PENDING.value
                )
            )
            return [record.to_model() for record in result.scalars().all()]

    async def find_by_signature(self, signature: str) -> PaymentRequest | None:
        async with self._datastore.session() as session:
            result = await session.execute(
                select(PaymentRequestRecord).where(
                    PaymentRequestRecord.transaction_signature == signature
                )
            )
            record = result.scalar_one_or_none()
            return None if record is None else record.to_model()

    async def purge(self, *, created_before: datetime) -> list[str]:
        """Delete non-pending requests created before *created_before*."""
        condition = (
            PaymentRequestRecord.status != PaymentStatus.PENDING.value,
            PaymentRequestRecord.created_at < created_before,
        )
        async with self._datastore.session() as session:
            result = await session.execute(select(PaymentRequestRecord.id).where(*condition))
            doomed = list(result.scalars().all())
            if doomed:
                await session.execute(
                    delete(PaymentRequestRecord).where(PaymentRequestRecord.id.in_(doomed))
                )
                await session.commit()
            return doomed
