"""Solana JSON-RPC client and wire models."""

from __future__ import annotations

from solana_tax.chain.rpc.models import (
    Instruction,
    RawTransactionEnvelope,
    SignatureInfo,
    TokenBalance,
)
from solana_tax.chain.rpc.service import SolanaRPCService

__all__ = [
    "Instruction",
    "RawTransactionEnvelope",
    "SignatureInfo",
    "SolanaRPCService",
    "TokenBalance",
]
