"""Export service — paid, tax-formatted transaction reports.

The payment check runs before any chain fetch. A paid request is consumed
by the export it authorizes; if building the report fails afterwards the
request is released so the payer can retry.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from solana_tax.engine.models.payment import ExportType
from solana_tax.engine.models.transaction import LAMPORTS_PER_SOL, TxStatus, TxType
from solana_tax.engine.summary import Summary, aggregate
from solana_tax.engine.validation import (
    validate_date_range,
    validate_export_type,
    validate_wallet_address,
)
from solana_tax.errors.definitions import ErrRendererUnavailable
from solana_tax.errors.tax_errors import TaxError
from solana_tax.utils.clock import from_unix

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import date, datetime

    from solana_tax.engine.client import TaxEngine
    from solana_tax.engine.models.payment import DateRange, PaymentRequest
    from solana_tax.engine.models.transaction import Transaction

    DateInput = date | datetime | str | None
    Renderer = Callable[[ExportReport], bytes]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportReport:
    """Everything a renderer needs; only built for a paid request."""

    address: str
    date_range: DateRange
    export_type: ExportType
    transactions: list[Transaction]
    summary: Summary
    payment: PaymentRequest

    @property
    def filename(self) -> str:
        start = self.date_range.start.date().isoformat()
        end = self.date_range.end.date().isoformat()
        return f"solana-transactions-{self.address}-{start}-{end}.{self.export_type.value}"


class ExportService:
    """Builds and renders exports once the payment gate lets them through.

    CSV rendering is built in; other formats need a renderer registered
    with :meth:`register_renderer`.
    """

    def __init__(
        self, engine: TaxEngine, *, renderers: Mapping[ExportType, Renderer] | None = None
    ) -> None:
        self._engine = engine
        self._renderers: dict[ExportType, Renderer] = {ExportType.CSV: render_csv}
        if renderers:
            self._renderers.update(renderers)

    def register_renderer(self, export_type: ExportType | str, renderer: Renderer) -> None:
        self._renderers[validate_export_type(export_type)] = renderer

    def has_renderer(self, export_type: ExportType | str) -> bool:
        return validate_export_type(export_type) in self._renderers

    async def prepare(
        self,
        request_id: str | None,
        address: str,
        start: DateInput,
        end: DateInput,
        export_type: ExportType | str,
    ) -> ExportReport:
        """Authorize against *request_id* and build the report.

        Raises:
            TaxError: Validation errors, ``ErrPaymentRequired`` when no
                matching paid request exists, ``RPCError`` if the fetch fails.
        """
        kind = validate_export_type(export_type)
        wallet = validate_wallet_address(address)
        date_range = validate_date_range(start, end, max_days=self._engine.config.max_range_days)

        gate = self._engine.payment_gate
        payment = await gate.authorize_export(request_id, wallet, kind)
        try:
            transactions = await self._engine.transaction_service.fetch_range(wallet, date_range)
        except TaxError:
            await gate.release_export(payment.id)
            raise

        logger.info(
            "Prepared %s export for %s: %d transactions", kind, wallet, len(transactions)
        )
        return ExportReport(
            address=wallet,
            date_range=date_range,
            export_type=kind,
            transactions=transactions,
            summary=aggregate(transactions),
            payment=payment,
        )

    async def export(
        self,
        request_id: str | None,
        address: str,
        start: DateInput,
        end: DateInput,
        export_type: ExportType | str,
    ) -> tuple[ExportReport, bytes]:
        """Prepare and render in one step.

        Raises:
            TaxError: ``ErrRendererUnavailable`` before touching the payment
                when nothing can render *export_type*; otherwise as
                :meth:`prepare`.
        """
        kind = validate_export_type(export_type)
        renderer = self._renderers.get(kind)
        if renderer is None:
            raise ErrRendererUnavailable
        report = await self.prepare(request_id, address, start, end, kind)
        return report, renderer(report)


# ---------------------------------------------------------------------------
# CSV rendering
# ---------------------------------------------------------------------------

CSV_HEADERS = (
    "Date",
    "Time",
    "Transaction Type",
    "Token",
    "Amount",
    "Price (USD)",
    "Value (USD)",
    "Fee (SOL)",
    "Transaction Hash",
    "Status",
    "Notes",
)

TAX_LABELS = {
    TxType.BUY: "Purchase",
    TxType.SELL: "Sale",
    TxType.SWAP: "Swap",
    TxType.LP: "Liquidity",
    TxType.AIRDROP: "Airdrop",
    TxType.UNKNOWN: "Other",
}

_AMOUNT_PLACES = Decimal("0.00000001")
_USD_PLACES = Decimal("0.01")
_FEE_PLACES = Decimal("0.000000001")


def _fixed(value: Decimal, places: Decimal, zero: str) -> str:
    if not value:
        return zero
    return str(value.quantize(places, rounding=ROUND_HALF_UP))


def format_amount(value: Decimal) -> str:
    return _fixed(value, _AMOUNT_PLACES, "0")


def format_usd(value: Decimal) -> str:
    return _fixed(value, _USD_PLACES, "0.00")


def format_fee(lamports: int) -> str:
    """Lamports rendered as SOL with nine decimals."""
    return _fixed(Decimal(lamports) / LAMPORTS_PER_SOL, _FEE_PLACES, "0")


def transaction_notes(tx: Transaction) -> str:
    notes: list[str] = []
    if tx.type is TxType.SWAP:
        notes.append("DEX swap transaction")
        if tx.swap_to:
            notes.append(f"received {format_amount(tx.swap_to_amount or Decimal(0))} {tx.swap_to}")
    elif tx.type is TxType.LP:
        notes.append("Liquidity pool activity")
    elif tx.type is TxType.AIRDROP:
        notes.append("Token airdrop")
    if tx.status is TxStatus.FAILED:
        notes.append("Transaction failed")
    return "; ".join(notes)


def _transaction_row(tx: Transaction) -> list[str]:
    when = from_unix(tx.block_time)
    return [
        when.strftime("%Y-%m-%d"),
        when.strftime("%H:%M:%S"),
        TAX_LABELS[tx.type],
        tx.token,
        format_amount(tx.amount),
        format_usd(tx.price),
        format_usd(tx.value),
        format_fee(tx.fee),
        tx.id,
        tx.status.value,
        transaction_notes(tx),
    ]


def _summary_rows(report: ExportReport) -> list[list[str]]:
    summary = report.summary
    start = report.date_range.start.date().isoformat()
    end = report.date_range.end.date().isoformat()
    pairs = [
        ("SUMMARY", "REPORT SUMMARY"),
        ("Wallet Address", report.address),
        ("Date Range", f"{start} - {end}"),
        ("Total Transactions", str(summary.total_transactions)),
        ("Successful Transactions", str(summary.successful_transactions)),
        ("Failed Transactions", str(summary.failed_transactions)),
        ("Total Fees (SOL)", format_fee(summary.total_fees_lamports)),
        ("Total Value (USD)", format_usd(summary.total_value)),
        ("Net Gain (USD)", format_usd(summary.net_gain)),
        ("Total Volume (USD)", format_usd(summary.total_volume)),
    ]
    padding = [""] * (len(CSV_HEADERS) - 2)
    return [[label, value, *padding] for label, value in pairs]


def render_csv(report: ExportReport) -> bytes:
    """UTF-8 CSV: one row per transaction, a blank row, then the summary block."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(_transaction_row(tx) for tx in report.transactions)
    writer.writerow([""] * len(CSV_HEADERS))
    writer.writerows(_summary_rows(report))
    return buffer.getvalue().encode("utf-8")
