"""Chain collaborators — Solana JSON-RPC and live USD prices."""

from __future__ import annotations

from solana_tax.chain.service import ChainService

__all__ = ["ChainService"]
