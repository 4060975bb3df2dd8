"""Combined RPC + price feed chain service.

Composes the Solana JSON-RPC client and the USD price feed into the
single collaborator the engine consumes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from solana_tax.chain.prices.service import PriceFeedService
from solana_tax.chain.rpc.service import SolanaRPCService

if TYPE_CHECKING:
    from collections.abc import Iterable
    from decimal import Decimal

    from solana_tax.chain.rpc.models import RawTransactionEnvelope, SignatureInfo
    from solana_tax.config.settings import AppConfig


class ChainService:
    """Unified chain service composing RPC + price feed.

    Usage::

        chain = ChainService(config)
        await chain.connect()
        try:
            sigs = await chain.fetch_signatures(address, 1000)
            prices = await chain.fetch_chain_price(["SOL"])
        finally:
            await chain.close()
    """

    def __init__(self, config: AppConfig) -> None:
        """Initialize the chain service with app config.

        Args:
            config: Application configuration containing rpc and prices settings.
        """
        self._rpc = SolanaRPCService(config.rpc)
        self._prices = PriceFeedService(config.prices)

    async def connect(self) -> None:
        """Connect both HTTP clients."""
        await self._rpc.connect()
        await self._prices.connect()

    async def close(self) -> None:
        """Close both HTTP clients."""
        await self._rpc.close()
        await self._prices.close()

    @property
    def is_connected(self) -> bool:
        """Check if both services are connected."""
        return self._rpc.is_connected and self._prices.is_connected

    @property
    def rpc(self) -> SolanaRPCService:
        """Direct access to the RPC client."""
        return self._rpc

    @property
    def prices(self) -> PriceFeedService:
        """Direct access to the price feed."""
        return self._prices

    # ------------------------------------------------------------------
    # RPC delegation
    # ------------------------------------------------------------------

    async def fetch_signatures(self, address: str, limit: int) -> list[SignatureInfo]:
        return await self._rpc.get_signatures_for_address(address, limit=limit)

    async def fetch_transaction(self, signature: str) -> RawTransactionEnvelope | None:
        return await self._rpc.get_transaction(signature)

    async def fetch_balance(self, address: str) -> int:
        return await self._rpc.get_balance(address)

    async def fetch_recent_incoming_transfers(
        self, address: str, limit: int
    ) -> list[SignatureInfo]:
        return await self._rpc.get_recent_incoming_transfers(address, limit=limit)

    # ------------------------------------------------------------------
    # Price feed delegation
    # ------------------------------------------------------------------

    async def fetch_chain_price(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """Best-effort live USD prices; raises PriceFeedError on failure."""
        return await self._prices.fetch_prices(symbols)
