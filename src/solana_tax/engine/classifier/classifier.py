"""TransactionClassifier — raw envelope → categorized, valued Transaction.

Pure and synchronous: the only shared state it reads is the price table,
one entry at a time, so envelopes may be classified concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from solana_tax.engine.classifier.rules import (
    DEFAULT_RULES,
    NATIVE_BALANCE_RULE,
    Categorization,
    ClassificationRule,
    PriceLookup,
    RuleContext,
)
from solana_tax.engine.models.transaction import Transaction, TxStatus, TxType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from solana_tax.chain.rpc.models import RawTransactionEnvelope

logger = logging.getLogger(__name__)

_UNCLASSIFIED = Categorization(type=TxType.UNKNOWN)


class TransactionClassifier:
    """Assigns each envelope one category using an ordered rule list.

    Usage::

        classifier = TransactionClassifier(price_table)
        tx = classifier.classify(envelope, wallet_address)
    """

    def __init__(
        self,
        prices: PriceLookup,
        *,
        rules: Sequence[ClassificationRule] = DEFAULT_RULES,
        fallback: ClassificationRule = NATIVE_BALANCE_RULE,
    ) -> None:
        self._prices = prices
        self._rules = tuple(rules)
        self._fallback = fallback

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        """Instruction rules in priority order (fallback excluded)."""
        return self._rules

    def classify(
        self, envelope: RawTransactionEnvelope, wallet_address: str
    ) -> Transaction | None:
        """Classify one envelope from the point of view of *wallet_address*.

        Returns:
            The Transaction, or None when the envelope has no block time or
            no settlement metadata. A successful transaction whose only
            signal is dust comes back as ``unknown`` with a zero amount.
        """
        if envelope.block_time is None or not envelope.has_settlement_data:
            logger.debug("Skipping unclassifiable envelope %s", envelope.signature)
            return None

        status = TxStatus.FAILED if envelope.failed else TxStatus.SUCCESS
        if status is TxStatus.FAILED:
            # Only the fee moved; nothing else to categorize.
            result, program_id = _UNCLASSIFIED, None
        else:
            result, program_id = self._categorize(envelope, wallet_address)

        price = result.price
        if price is None:
            price = self._prices.price_of(result.token)

        tx = Transaction(
            id=envelope.signature,
            block_time=envelope.block_time,
            slot=envelope.slot,
            fee=envelope.fee,
            status=status,
            type=result.type,
            token=result.token,
            token_mint=result.token_mint,
            amount=result.amount,
            price=price,
            swap_to=result.swap_to,
            swap_to_amount=result.swap_to_amount,
            program_id=program_id,
        )
        logger.debug("Classified %s as %s %s %s", tx.id, tx.type, tx.amount, tx.token)
        return tx

    def _categorize(
        self, envelope: RawTransactionEnvelope, wallet_address: str
    ) -> tuple[Categorization, str | None]:
        """First instruction whose first matching rule yields a result wins."""
        ctx = RuleContext(envelope=envelope, wallet_address=wallet_address, prices=self._prices)

        for instruction in envelope.instructions:
            program_id = envelope.program_id(instruction)
            if program_id is None:
                continue
            rule = next((r for r in self._rules if r.matches(program_id, envelope)), None)
            if rule is None:
                continue
            result = rule.categorize(replace(ctx, program_id=program_id))
            if result is not None:
                return result, program_id

        result = self._fallback.categorize(ctx)
        return (result or _UNCLASSIFIED), None
