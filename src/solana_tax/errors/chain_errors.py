"""Solana RPC & price feed errors."""

from __future__ import annotations

from solana_tax.errors.tax_errors import TaxError


class RPCError(TaxError):
    """Error from the Solana JSON-RPC node."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="rpc-error")


class PriceFeedError(TaxError):
    """Error from the USD price feed."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="price-feed-error")
