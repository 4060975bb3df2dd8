"""Input validation — wallet addresses, date ranges, export types.

All failures raise predefined :class:`TaxError` instances with a 400
status; they are never retried.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import base58

from solana_tax.engine.models.payment import DateRange, ExportType
from solana_tax.errors.definitions import (
    ErrDateRangeTooLarge,
    ErrInvalidDateRange,
    ErrInvalidWalletAddress,
    ErrMissingDateRange,
    ErrMissingWalletAddress,
    ErrUnsupportedExportType,
)
from solana_tax.utils.clock import as_utc

_PUBKEY_LENGTH = 32


def is_valid_wallet_address(address: str) -> bool:
    """True for base58 strings that decode to a 32-byte public key."""
    try:
        raw = base58.b58decode(address)
    except ValueError:
        return False
    return len(raw) == _PUBKEY_LENGTH and base58.b58encode(raw).decode() == address


def validate_wallet_address(address: str | None) -> str:
    """Return *address* unchanged or raise a validation error."""
    if not address:
        raise ErrMissingWalletAddress
    if not is_valid_wallet_address(address):
        raise ErrInvalidWalletAddress
    return address


def _parse_bound(value: date | datetime | str, *, end: bool) -> datetime:
    """Normalize one bound to an aware UTC datetime.

    Plain dates (and ``YYYY-MM-DD`` strings) cover the whole UTC day.
    """
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value) if len(value) == 10 else datetime.fromisoformat(value)
        except ValueError:
            raise ErrInvalidDateRange from None
    if isinstance(value, datetime):
        return as_utc(value)
    day_time = time(23, 59, 59) if end else time(0, 0, 0)
    return as_utc(datetime.combine(value, day_time))


def validate_date_range(
    start: date | datetime | str | None,
    end: date | datetime | str | None,
    *,
    max_days: int = 365,
) -> DateRange:
    """Build an inclusive :class:`DateRange` from user input."""
    if start is None or end is None or start == "" or end == "":
        raise ErrMissingDateRange
    start_dt = _parse_bound(start, end=False)
    end_dt = _parse_bound(end, end=True)
    if start_dt > end_dt:
        raise ErrInvalidDateRange
    if end_dt - start_dt > timedelta(days=max_days, seconds=86399):
        raise ErrDateRangeTooLarge
    return DateRange(start=start_dt, end=end_dt)


def validate_export_type(value: str | ExportType | None) -> ExportType:
    """Accept ``csv``/``pdf`` in any case."""
    if isinstance(value, ExportType):
        return value
    try:
        return ExportType((value or "").lower())
    except ValueError:
        raise ErrUnsupportedExportType from None
