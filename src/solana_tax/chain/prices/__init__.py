"""Live USD price feed client."""

from __future__ import annotations

from solana_tax.chain.prices.service import PriceFeedService

__all__ = ["PriceFeedService"]
