"""Transaction classification engine."""

from __future__ import annotations

from solana_tax.engine.classifier.classifier import TransactionClassifier
from solana_tax.engine.classifier.rules import (
    DEFAULT_RULES,
    NATIVE_BALANCE_RULE,
    Categorization,
    ClassificationRule,
)

__all__ = [
    "DEFAULT_RULES",
    "NATIVE_BALANCE_RULE",
    "Categorization",
    "ClassificationRule",
    "TransactionClassifier",
]
