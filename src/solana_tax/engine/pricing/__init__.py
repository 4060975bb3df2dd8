"""Token pricing."""

from __future__ import annotations

from solana_tax.engine.pricing.price_table import TokenPriceTable

__all__ = ["TokenPriceTable"]
