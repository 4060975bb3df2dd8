"""Classification rules — ordered, each returning an optional categorization.

An instruction is offered to the rules in priority order; the first rule
whose ``matches`` predicate accepts the instruction's program is the only
one consulted for that instruction. If its ``categorize`` returns a
:class:`Categorization` the envelope is settled, otherwise the scan moves
on to the next instruction. :data:`NATIVE_BALANCE_RULE` is the trailing
catch-all applied when no instruction produced a result.

Priority (most to least reliable signal):

1. token-program transfer of a wallet-owned token account
2. known swap program
3. known liquidity program
4. airdrop/mint markers in the log lines
5. native SOL balance delta (catch-all)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from solana_tax.engine.classifier.programs import (
    AIRDROP_LOG_MARKERS,
    LIQUIDITY_PROGRAM_IDS,
    NATIVE_SYMBOL,
    SWAP_PROGRAM_IDS,
    TOKEN_PROGRAM_ID,
    is_dust,
    symbol_for_mint,
)
from solana_tax.engine.models.transaction import LAMPORTS_PER_SOL, TxType

if TYPE_CHECKING:
    from collections.abc import Callable

    from solana_tax.chain.rpc.models import RawTransactionEnvelope


class PriceLookup(Protocol):
    """Anything that resolves a USD unit price for a token symbol."""

    def price_of(self, symbol: str) -> Decimal: ...


@dataclass(frozen=True)
class Categorization:
    """Partial result produced by a rule.

    ``price`` stays None when the rule has no opinion; the classifier then
    resolves it from the price table.
    """

    type: TxType
    token: str = NATIVE_SYMBOL
    token_mint: str | None = None
    amount: Decimal = Decimal(0)
    price: Decimal | None = None
    swap_to: str | None = None
    swap_to_amount: Decimal | None = None


@dataclass(frozen=True)
class RuleContext:
    """Inputs shared by every rule for one envelope."""

    envelope: RawTransactionEnvelope
    wallet_address: str
    prices: PriceLookup
    program_id: str | None = None


@dataclass(frozen=True)
class ClassificationRule:
    """A named (predicate, categorizer) pair."""

    name: str
    matches: Callable[[str, RawTransactionEnvelope], bool]
    categorize: Callable[[RuleContext], Categorization | None]


# ---------------------------------------------------------------------------
# Balance scanning helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenDelta:
    """Net change of one wallet-owned token account."""

    account_index: int
    mint: str
    delta: Decimal
    is_new: bool = False

    @property
    def symbol(self) -> str:
        return symbol_for_mint(self.mint)


def wallet_token_deltas(envelope: RawTransactionEnvelope, wallet: str) -> list[TokenDelta]:
    """Non-dust token-account deltas owned by *wallet*.

    Accounts are visited in order of first appearance across the pre
    balances and then the post balances. An account only present after the
    transaction contributes its full post amount; one only present before
    (closed) contributes minus its pre amount.
    """
    pre: dict[tuple[int, str], Decimal] = {}
    post: dict[tuple[int, str], Decimal] = {}
    order: list[tuple[int, str]] = []

    for balances, bucket in (
        (envelope.pre_token_balances, pre),
        (envelope.post_token_balances, post),
    ):
        for bal in balances:
            if bal.owner != wallet:
                continue
            key = (bal.account_index, bal.mint)
            bucket[key] = bal.ui_amount or Decimal(0)
            if key not in order:
                order.append(key)

    deltas: list[TokenDelta] = []
    for key in order:
        before = pre.get(key)
        after = post.get(key, Decimal(0))
        change = after if before is None else after - before
        if is_dust(change):
            continue
        deltas.append(
            TokenDelta(account_index=key[0], mint=key[1], delta=change, is_new=before is None)
        )
    return deltas


def native_delta_sol(envelope: RawTransactionEnvelope, wallet: str) -> Decimal | None:
    """Wallet's native balance change in SOL, None if the wallet is absent."""
    lamports = envelope.lamport_delta(wallet)
    if lamports is None:
        return None
    return Decimal(lamports) / LAMPORTS_PER_SOL


def _native_amount(ctx: RuleContext) -> Decimal:
    """Magnitude of the wallet's native change, zero when dust or absent."""
    delta = native_delta_sol(ctx.envelope, ctx.wallet_address)
    if delta is None or is_dust(delta):
        return Decimal(0)
    return abs(delta)


# ---------------------------------------------------------------------------
# Categorizers
# ---------------------------------------------------------------------------


def categorize_token_change(ctx: RuleContext) -> Categorization | None:
    """First non-dust wallet token delta → buy (incoming) or sell (outgoing)."""
    deltas = wallet_token_deltas(ctx.envelope, ctx.wallet_address)
    if not deltas:
        return None
    first = deltas[0]
    return Categorization(
        type=TxType.BUY if first.delta > 0 else TxType.SELL,
        token=first.symbol,
        token_mint=first.mint,
        amount=abs(first.delta),
        price=ctx.prices.price_of(first.symbol),
    )


def categorize_swap(ctx: RuleContext) -> Categorization:
    """Two wallet token deltas → token1 swapped to token2.

    Falls back to a SOL-denominated swap sized by the native delta.
    """
    deltas = wallet_token_deltas(ctx.envelope, ctx.wallet_address)
    if len(deltas) >= 2:
        sold, bought = deltas[0], deltas[1]
        return Categorization(
            type=TxType.SWAP,
            token=sold.symbol,
            token_mint=sold.mint,
            amount=abs(sold.delta),
            price=ctx.prices.price_of(sold.symbol),
            swap_to=bought.symbol,
            swap_to_amount=abs(bought.delta),
        )
    return Categorization(
        type=TxType.SWAP,
        amount=_native_amount(ctx),
        price=ctx.prices.price_of(NATIVE_SYMBOL),
    )


def categorize_liquidity(ctx: RuleContext) -> Categorization:
    return Categorization(type=TxType.LP, amount=_native_amount(ctx))


def categorize_airdrop(ctx: RuleContext) -> Categorization:
    """First newly created wallet token account with a non-dust balance."""
    for delta in wallet_token_deltas(ctx.envelope, ctx.wallet_address):
        if delta.is_new and delta.delta > 0:
            return Categorization(
                type=TxType.AIRDROP,
                token=delta.symbol,
                token_mint=delta.mint,
                amount=delta.delta,
                price=ctx.prices.price_of(delta.symbol),
            )
    return Categorization(type=TxType.AIRDROP, amount=_native_amount(ctx))


def categorize_native_delta(ctx: RuleContext) -> Categorization | None:
    """Catch-all: the wallet's SOL balance moved by more than dust."""
    delta = native_delta_sol(ctx.envelope, ctx.wallet_address)
    if delta is None or is_dust(delta):
        return None
    return Categorization(
        type=TxType.BUY if delta > 0 else TxType.SELL,
        token=NATIVE_SYMBOL,
        amount=abs(delta),
    )


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _is_token_program(program_id: str, _envelope: RawTransactionEnvelope) -> bool:
    return program_id == TOKEN_PROGRAM_ID


def _is_swap_program(program_id: str, _envelope: RawTransactionEnvelope) -> bool:
    return program_id in SWAP_PROGRAM_IDS


def _is_liquidity_program(program_id: str, _envelope: RawTransactionEnvelope) -> bool:
    return program_id in LIQUIDITY_PROGRAM_IDS


def has_airdrop_markers(_program_id: str, envelope: RawTransactionEnvelope) -> bool:
    """Case-insensitive search of the log lines for airdrop/mint markers."""
    return any(
        marker in line.lower() for line in envelope.logs for marker in AIRDROP_LOG_MARKERS
    )


TOKEN_TRANSFER_RULE = ClassificationRule(
    "token_transfer", _is_token_program, categorize_token_change
)
SWAP_RULE = ClassificationRule("swap", _is_swap_program, categorize_swap)
LIQUIDITY_RULE = ClassificationRule("liquidity", _is_liquidity_program, categorize_liquidity)
AIRDROP_RULE = ClassificationRule("airdrop", has_airdrop_markers, categorize_airdrop)
NATIVE_BALANCE_RULE = ClassificationRule(
    "native_balance", lambda _p, _e: True, categorize_native_delta
)

DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    TOKEN_TRANSFER_RULE,
    SWAP_RULE,
    LIQUIDITY_RULE,
    AIRDROP_RULE,
)
