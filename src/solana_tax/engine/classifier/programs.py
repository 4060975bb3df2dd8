"""Known Solana program ids, token mints and classification thresholds."""

from __future__ import annotations

from decimal import Decimal

# SPL Token program (canonical, not Token-2022)
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

SWAP_PROGRAM_IDS: frozenset[str] = frozenset(
    {
        "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",  # Orca
        "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc",  # Orca Whirlpools
        "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",  # Raydium AMM v4
        "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4",  # Jupiter v6
        "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB",  # Jupiter v4
    }
)

LIQUIDITY_PROGRAM_IDS: frozenset[str] = frozenset(
    {
        "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK",  # Raydium CLMM
        "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C",  # Raydium CPMM
        "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo",  # Meteora DLMM
        "Eo7WjKq67rjJQSZxS6z3YkapzY3eMj6Xy8X5EQVn5UaB",  # Meteora pools
    }
)

KNOWN_MINTS: dict[str, str] = {
    "So11111111111111111111111111111111111111112": "SOL",
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "mSOL",
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": "JUP",
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": "RAY",
    "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kJZE": "ORCA",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "BONK",
}

NATIVE_SYMBOL = "SOL"
UNKNOWN_TOKEN = "Unknown Token"

# Balance changes at or below this magnitude are rounding noise.
DUST_THRESHOLD = Decimal("0.000001")

AIRDROP_LOG_MARKERS: tuple[str, ...] = ("airdrop", "mint")


def symbol_for_mint(mint: str) -> str:
    """Map a mint address to its ticker, ``Unknown Token`` otherwise."""
    return KNOWN_MINTS.get(mint, UNKNOWN_TOKEN)


def is_dust(amount: Decimal) -> bool:
    return abs(amount) <= DUST_THRESHOLD
