"""Predefined error instances shared across the engine."""

from __future__ import annotations

from solana_tax.errors.tax_errors import TaxError

# -- Validation ------------------------------------------------------------

ErrMissingWalletAddress = TaxError(
    "wallet address is required", status_code=400, code="missing-wallet-address"
)
ErrInvalidWalletAddress = TaxError(
    "invalid Solana wallet address", status_code=400, code="invalid-wallet-address"
)
ErrMissingDateRange = TaxError(
    "startDate and endDate are required", status_code=400, code="missing-date-range"
)
ErrInvalidDateRange = TaxError(
    "startDate must be before endDate", status_code=400, code="invalid-date-range"
)
ErrDateRangeTooLarge = TaxError(
    "date range is too large", status_code=400, code="date-range-too-large"
)
ErrUnsupportedExportType = TaxError(
    'export type must be either "csv" or "pdf"',
    status_code=400,
    code="unsupported-export-type",
)

# -- Payments --------------------------------------------------------------

ErrPaymentNotFound = TaxError(
    "payment request not found", status_code=404, code="payment-not-found"
)
ErrPaymentRequired = TaxError(
    "a paid payment request matching this export is required",
    status_code=402,
    code="payment-required",
)

# -- Exports ---------------------------------------------------------------

ErrRendererUnavailable = TaxError(
    "no renderer is registered for this export type",
    status_code=501,
    code="renderer-unavailable",
)
