"""Command-line entry point — query a wallet and print JSON.

    # Classified transactions in a date range
    python -m solana_tax.main transactions <address> <start> <end>

    # Summary statistics for a date range
    python -m solana_tax.main summary <address> <start> <end>

    # Balance, transactions and summary together
    python -m solana_tax.main overview <address> <start> <end>

    # First rows of an export and its total size
    python -m solana_tax.main preview <address> <start> <end>

    # Current SOL balance
    python -m solana_tax.main balance <address>

Dates are ``YYYY-MM-DD`` (whole UTC days) or ISO-8601 timestamps.
Settings come from ``SOLTAX_*`` environment variables.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Any

from solana_tax.config.settings import AppConfig
from solana_tax.engine.client import TaxEngine
from solana_tax.errors.tax_errors import TaxError

if TYPE_CHECKING:
    from collections.abc import Sequence

_RANGE_COMMANDS = ("transactions", "summary", "overview", "preview")


async def _run(config: AppConfig, cmd: str, args: Sequence[str]) -> Any:
    engine = TaxEngine(config)
    await engine.initialize()
    try:
        service = engine.transaction_service
        if cmd == "balance":
            balance = await service.get_wallet_balance(args[0])
            return {"address": args[0], "balance": str(balance)}
        address, start, end = args
        if cmd == "transactions":
            txs = await service.get_transactions(address, start, end)
            return [tx.to_dict() for tx in txs]
        if cmd == "summary":
            return (await service.get_summary(address, start, end)).to_dict()
        if cmd == "overview":
            return (await service.get_overview(address, start, end)).to_dict()
        return (await service.get_preview(address, start, end)).to_dict()
    finally:
        await engine.close()


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(__doc__)
        return 1

    cmd = args[0].lower()
    if cmd == "balance":
        if len(args) != 2:
            print("Usage: solana-tax balance <address>")
            return 1
    elif cmd in _RANGE_COMMANDS:
        if len(args) != 4:
            print(f"Usage: solana-tax {cmd} <address> <start> <end>")
            return 1
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)
        return 1

    config = AppConfig()
    # one-shot run: no cron jobs
    config.task.enabled = False
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(_run(config, cmd, args[1:]))
    except TaxError as exc:
        print(f"error [{exc.code}]: {exc.message}", file=sys.stderr)
        return 2
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
