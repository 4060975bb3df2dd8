"""USD price feed client — CoinGecko ``/simple/price``.

Async HTTP client resolving current USD prices for a set of token symbols.
Symbols are mapped to CoinGecko coin ids through ``PriceConfig.coingecko_ids``;
symbols without an id are ignored.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

import httpx

from solana_tax.errors.chain_errors import PriceFeedError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from solana_tax.config.settings import PriceConfig


class PriceFeedService:
    """Async HTTP client for live token prices.

    Usage::

        feed = PriceFeedService(config)
        await feed.connect()
        try:
            prices = await feed.fetch_prices(["SOL", "USDC"])
        finally:
            await feed.close()
    """

    def __init__(self, config: PriceConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers = {"Accept": "application/json"}
        if self._config.api_key:
            headers["x-cg-demo-api-key"] = self._config.api_key
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers=headers,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def symbols(self) -> list[str]:
        """Symbols this feed knows how to price."""
        return list(self._config.coingecko_ids)

    async def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """Fetch current USD prices.

        Args:
            symbols: Token symbols (e.g. ``SOL``, ``USDC``).

        Returns:
            Mapping symbol → USD price for every symbol the feed returned.

        Raises:
            PriceFeedError: On HTTP errors, rate limiting or malformed bodies.
        """
        client = self._ensure_connected()
        ids = {
            self._config.coingecko_ids[s]: s for s in symbols if s in self._config.coingecko_ids
        }
        if not ids:
            return {}

        try:
            response = await client.get(
                "/simple/price",
                params={"ids": ",".join(sorted(ids)), "vs_currencies": "usd"},
            )
        except httpx.HTTPError as exc:
            raise PriceFeedError(f"price request failed: {exc}") from exc

        if response.status_code == 429:
            raise PriceFeedError("price feed rate limited", status_code=429)
        if response.status_code != 200:
            raise PriceFeedError(f"price feed returned HTTP {response.status_code}")

        try:
            body: dict[str, Any] = response.json()
        except ValueError as exc:
            raise PriceFeedError("price feed returned invalid JSON") from exc

        prices: dict[str, Decimal] = {}
        for coin_id, symbol in ids.items():
            usd = (body.get(coin_id) or {}).get("usd")
            if usd is None:
                continue
            try:
                price = Decimal(str(usd))
            except InvalidOperation:
                continue
            if price >= 0:
                prices[symbol] = price
        return prices

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Price feed not connected. Call connect() first."
            raise PriceFeedError(msg, status_code=500)
        return self._client
