"""Shared builders and fakes for the solana-tax test suite."""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import base58

from solana_tax.chain.rpc.models import (
    Instruction,
    RawTransactionEnvelope,
    SignatureInfo,
    TokenBalance,
)
from solana_tax.engine.classifier.programs import KNOWN_MINTS

# Deterministic, valid 32-byte addresses
WALLET = base58.b58encode(bytes(range(1, 33))).decode()
COUNTERPARTY = base58.b58encode(bytes(range(33, 65))).decode()
SERVICE_ADDRESS = base58.b58encode(bytes(range(65, 97))).decode()
SYSTEM_PROGRAM = "11111111111111111111111111111111"

MINTS = {symbol: mint for mint, symbol in KNOWN_MINTS.items()}
USDC_MINT = MINTS["USDC"]
WSOL_MINT = MINTS["SOL"]

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
BASE_TS = int(BASE_TIME.timestamp())

LAMPORTS = 1_000_000_000


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def token_balance(
    index: int, mint: str, amount: str | None, owner: str = WALLET
) -> TokenBalance:
    return TokenBalance(
        account_index=index,
        mint=mint,
        owner=owner,
        ui_amount=None if amount is None else Decimal(amount),
    )


def make_envelope(
    *,
    signature: str = "sig-1",
    block_time: int | None = BASE_TS,
    programs: tuple[str, ...] = (SYSTEM_PROGRAM,),
    wallet_lamports: tuple[int, int] = (10 * LAMPORTS, 10 * LAMPORTS),
    pre_tokens: tuple[TokenBalance, ...] = (),
    post_tokens: tuple[TokenBalance, ...] = (),
    logs: tuple[str, ...] = (),
    failed: bool = False,
    fee: int = 5000,
    has_meta: bool = True,
) -> RawTransactionEnvelope:
    """Envelope with keys ``(WALLET, COUNTERPARTY, *programs)``, one instruction per program."""
    keys = (WALLET, COUNTERPARTY, *programs)
    pre = (wallet_lamports[0], 5 * LAMPORTS, *([1] * len(programs)))
    post = (wallet_lamports[1], 5 * LAMPORTS, *([1] * len(programs)))
    return RawTransactionEnvelope(
        signature=signature,
        slot=250_000_000,
        block_time=block_time,
        fee=fee,
        failed=failed,
        account_keys=keys,
        pre_balances=pre,
        post_balances=post,
        pre_token_balances=pre_tokens,
        post_token_balances=post_tokens,
        instructions=tuple(Instruction(program_id_index=2 + i) for i in range(len(programs))),
        logs=logs,
        has_meta=has_meta,
    )


def payment_envelope(
    signature: str,
    lamports: int,
    *,
    block_time: int = BASE_TS + 30,
    payer: str = WALLET,
    recipient: str = SERVICE_ADDRESS,
    failed: bool = False,
) -> RawTransactionEnvelope:
    """A plain SOL transfer of *lamports* from *payer* to *recipient*."""
    return RawTransactionEnvelope(
        signature=signature,
        slot=250_000_001,
        block_time=block_time,
        fee=5000,
        failed=failed,
        account_keys=(payer, recipient, SYSTEM_PROGRAM),
        pre_balances=(20 * LAMPORTS, 0, 1),
        post_balances=(20 * LAMPORTS - lamports - 5000, lamports, 1),
        instructions=(Instruction(program_id_index=2, accounts=(0, 1)),),
    )


class FakeChain:
    """In-memory chain collaborator with the ChainService call surface."""

    def __init__(self) -> None:
        self.signatures: dict[str, list[SignatureInfo]] = {}
        self.envelopes: dict[str, RawTransactionEnvelope] = {}
        self.balances: dict[str, int] = {}
        self.prices: dict[str, Decimal] = {}
        self.error: Exception | None = None
        self.delay: float = 0.0
        self.calls: Counter[str] = Counter()

    def add(self, envelope: RawTransactionEnvelope, *addresses: str, err: object = None) -> None:
        """Register *envelope* as the newest transaction touching *addresses*."""
        self.envelopes[envelope.signature] = envelope
        if err is None and envelope.failed:
            err = {"InstructionError": [0, "Custom"]}
        info = SignatureInfo(
            signature=envelope.signature,
            slot=envelope.slot,
            block_time=envelope.block_time,
            err=err,
        )
        for address in addresses:
            self.signatures.setdefault(address, []).insert(0, info)

    async def _enter(self, name: str) -> None:
        self.calls[name] += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def fetch_signatures(self, address: str, limit: int) -> list[SignatureInfo]:
        await self._enter("fetch_signatures")
        return self.signatures.get(address, [])[:limit]

    async def fetch_recent_incoming_transfers(
        self, address: str, limit: int
    ) -> list[SignatureInfo]:
        await self._enter("fetch_recent_incoming_transfers")
        return self.signatures.get(address, [])[:limit]

    async def fetch_transaction(self, signature: str) -> RawTransactionEnvelope | None:
        await self._enter("fetch_transaction")
        return self.envelopes.get(signature)

    async def fetch_balance(self, address: str) -> int:
        await self._enter("fetch_balance")
        return self.balances.get(address, 0)

    async def fetch_chain_price(self, symbols) -> dict[str, Decimal]:
        await self._enter("fetch_chain_price")
        wanted = set(symbols)
        return {s: p for s, p in self.prices.items() if s in wanted}

    async def close(self) -> None:
        pass
