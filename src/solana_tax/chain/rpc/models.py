"""Solana RPC data models — signature info, token balances, envelopes.

Data classes representing ``getSignaturesForAddress`` and
``getTransaction`` (``json`` encoding) responses. Envelopes are read-only
inputs to the transaction classifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

# ---------------------------------------------------------------------------
# Signature info (getSignaturesForAddress)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignatureInfo:
    """One entry of a ``getSignaturesForAddress`` response.

    Attributes:
        signature: Base58 transaction signature.
        slot: Slot the transaction landed in.
        block_time: Unix seconds, None when the node has no block time.
        err: Chain-level error object, None on success.
    """

    signature: str
    slot: int = 0
    block_time: int | None = None
    err: Any = None

    @property
    def failed(self) -> bool:
        return self.err is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignatureInfo:
        """Create SignatureInfo from an RPC JSON dict."""
        return cls(
            signature=data.get("signature", ""),
            slot=data.get("slot", 0),
            block_time=data.get("blockTime"),
            err=data.get("err"),
        )


# ---------------------------------------------------------------------------
# Token balances and instructions
# ---------------------------------------------------------------------------


def _ui_amount(token_amount: dict[str, Any]) -> Decimal | None:
    """Prefer the exact ``uiAmountString`` over the float ``uiAmount``."""
    raw = token_amount.get("uiAmountString")
    if raw is None:
        raw = token_amount.get("uiAmount")
    if raw is None:
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        return None


@dataclass(frozen=True)
class TokenBalance:
    """A pre- or post-transaction SPL token account balance."""

    account_index: int
    mint: str
    owner: str = ""
    ui_amount: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenBalance:
        """Create TokenBalance from a ``meta.pre/postTokenBalances`` entry."""
        return cls(
            account_index=data.get("accountIndex", -1),
            mint=data.get("mint", ""),
            owner=data.get("owner", ""),
            ui_amount=_ui_amount(data.get("uiTokenAmount") or {}),
        )


@dataclass(frozen=True)
class Instruction:
    """A top-level compiled instruction."""

    program_id_index: int
    accounts: tuple[int, ...] = ()
    data: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Instruction:
        return cls(
            program_id_index=data.get("programIdIndex", -1),
            accounts=tuple(data.get("accounts") or ()),
            data=data.get("data", ""),
        )


# ---------------------------------------------------------------------------
# Envelope (getTransaction)
# ---------------------------------------------------------------------------


def _account_keys(message: dict[str, Any], meta: dict[str, Any]) -> list[str]:
    """Resolve accountKeys to base58 strings (json vs jsonParsed).

    Versioned transactions append ``meta.loadedAddresses`` (writable, then
    readonly) after the static keys.
    """
    keys = message.get("accountKeys") or []
    out = [k if isinstance(k, str) else k.get("pubkey", "") for k in keys]
    loaded = meta.get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        out.extend(loaded.get(role) or [])
    return out


@dataclass(frozen=True)
class RawTransactionEnvelope:
    """One on-chain transaction plus its execution metadata.

    ``has_meta`` is False when the node returned the transaction without
    a ``meta`` block; such envelopes cannot be classified.
    """

    signature: str
    slot: int = 0
    block_time: int | None = None
    fee: int = 0
    failed: bool = False
    account_keys: tuple[str, ...] = ()
    pre_balances: tuple[int, ...] = ()
    post_balances: tuple[int, ...] = ()
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()
    instructions: tuple[Instruction, ...] = ()
    logs: tuple[str, ...] = ()
    has_meta: bool = True

    @property
    def has_settlement_data(self) -> bool:
        """Whether balances and instructions are present and consistent."""
        return (
            self.has_meta
            and bool(self.instructions)
            and bool(self.pre_balances)
            and len(self.pre_balances) == len(self.post_balances)
        )

    def program_id(self, instruction: Instruction) -> str | None:
        """Resolve an instruction's program id through ``account_keys``."""
        idx = instruction.program_id_index
        if not 0 <= idx < len(self.account_keys):
            return None
        return self.account_keys[idx]

    def index_of(self, address: str) -> int | None:
        """Position of *address* in ``account_keys``, or None."""
        try:
            return self.account_keys.index(address)
        except ValueError:
            return None

    def lamport_delta(self, address: str) -> int | None:
        """``post - pre`` native balance of *address*, None if absent."""
        idx = self.index_of(address)
        if idx is None or idx >= len(self.pre_balances) or idx >= len(self.post_balances):
            return None
        return self.post_balances[idx] - self.pre_balances[idx]

    @classmethod
    def from_rpc(cls, signature: str, data: dict[str, Any]) -> RawTransactionEnvelope:
        """Create an envelope from a ``getTransaction`` result."""
        raw_meta = data.get("meta")
        meta: dict[str, Any] = raw_meta if isinstance(raw_meta, dict) else {}
        message = (data.get("transaction") or {}).get("message") or {}
        return cls(
            signature=signature,
            slot=data.get("slot", 0),
            block_time=data.get("blockTime"),
            fee=meta.get("fee", 0),
            failed=meta.get("err") is not None,
            account_keys=tuple(_account_keys(message, meta)),
            pre_balances=tuple(meta.get("preBalances") or ()),
            post_balances=tuple(meta.get("postBalances") or ()),
            pre_token_balances=tuple(
                TokenBalance.from_dict(b) for b in meta.get("preTokenBalances") or ()
            ),
            post_token_balances=tuple(
                TokenBalance.from_dict(b) for b in meta.get("postTokenBalances") or ()
            ),
            instructions=tuple(
                Instruction.from_dict(ix) for ix in message.get("instructions") or ()
            ),
            logs=tuple(meta.get("logMessages") or ()),
            has_meta=bool(raw_meta),
        )
