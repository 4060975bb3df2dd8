"""Solana JSON-RPC HTTP client — signatures, transactions, balances.

Provides an async HTTP client for the subset of the Solana JSON-RPC API
the tax engine needs:
- getSignaturesForAddress — most recent signatures touching an address
- getTransaction — one transaction envelope with execution metadata
- getBalance — native balance in lamports
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any

import httpx

from solana_tax.chain.rpc.models import RawTransactionEnvelope, SignatureInfo
from solana_tax.errors.chain_errors import RPCError

if TYPE_CHECKING:
    from solana_tax.config.settings import RPCConfig

logger = logging.getLogger(__name__)

# Raised by the wire models when a result has the wrong shape.
_SHAPE_ERRORS = (AttributeError, LookupError, TypeError, ValueError)


class SolanaRPCService:
    """Async HTTP client for a Solana JSON-RPC node.

    Usage::

        rpc = SolanaRPCService(config)
        await rpc.connect()
        try:
            sigs = await rpc.get_signatures_for_address(address, limit=1000)
        finally:
            await rpc.close()
    """

    def __init__(self, config: RPCConfig) -> None:
        """Initialize the RPC service.

        Args:
            config: RPC configuration (url, commitment, timeouts).
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.url,
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_signatures_for_address(
        self, address: str, *, limit: int = 1000
    ) -> list[SignatureInfo]:
        """List the most recent signatures for an address, newest first.

        Args:
            address: Base58 account address.
            limit: Maximum signatures returned (the node caps this at 1000).

        Returns:
            List of SignatureInfo.

        Raises:
            RPCError: On HTTP or JSON-RPC errors.
        """
        params: list[Any] = [
            address,
            {"limit": limit, "commitment": self._config.commitment},
        ]
        result = await self._call("getSignaturesForAddress", params)
        try:
            return [SignatureInfo.from_dict(item) for item in result or []]
        except _SHAPE_ERRORS as exc:
            raise RPCError(f"RPC getSignaturesForAddress malformed result: {exc}") from exc

    async def get_transaction(self, signature: str) -> RawTransactionEnvelope | None:
        """Fetch one transaction envelope.

        Returns:
            The envelope, or None if the node does not know the signature.

        Raises:
            RPCError: On HTTP or JSON-RPC errors.
        """
        params: list[Any] = [
            signature,
            {
                "encoding": "json",
                "commitment": self._config.commitment,
                "maxSupportedTransactionVersion": 0,
            },
        ]
        result = await self._call("getTransaction", params)
        if not result:
            return None
        try:
            return RawTransactionEnvelope.from_rpc(signature, result)
        except _SHAPE_ERRORS as exc:
            raise RPCError(f"RPC getTransaction malformed result: {exc}") from exc

    async def get_balance(self, address: str) -> int:
        """Get the native balance of an address in lamports."""
        result = await self._call(
            "getBalance", [address, {"commitment": self._config.commitment}]
        )
        try:
            if isinstance(result, dict):
                return int(result.get("value", 0))
            return int(result or 0)
        except _SHAPE_ERRORS as exc:
            raise RPCError(f"RPC getBalance malformed result: {exc}") from exc

    async def get_recent_incoming_transfers(
        self, address: str, *, limit: int = 10
    ) -> list[SignatureInfo]:
        """Most recent signatures at a receiving address (payment polling)."""
        return await self.get_signatures_for_address(address, limit=limit)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        client = self._ensure_connected()
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        try:
            response = await client.post("", json=payload)
        except httpx.HTTPError as exc:
            raise RPCError(f"RPC {method} failed: {exc}") from exc

        if response.status_code == 429:
            raise RPCError(f"RPC {method} rate limited", status_code=429)
        if response.status_code != 200:
            raise RPCError(
                f"RPC {method} returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RPCError(f"RPC {method} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise RPCError(f"RPC {method} returned a non-object response")

        error = body.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise RPCError(f"RPC {method} error: {message}")

        logger.debug("RPC %s ok", method)
        return body.get("result")

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "RPC service not connected. Call connect() first."
            raise RPCError(msg, status_code=500)
        return self._client
