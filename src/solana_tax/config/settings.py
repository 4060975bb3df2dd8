"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``SOLTAX_``, nested via ``__``)
2. YAML config file (``config_path`` or ``SOLTAX_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class PaymentStoreBackend(enum.StrEnum):
    """Where payment requests are kept."""

    MEMORY = "memory"
    DATABASE = "database"


# Default fallback prices (USD). Overwritten by the live refresh job.
_DEFAULT_SEED_PRICES: dict[str, Decimal] = {
    "SOL": Decimal("150.00"),
    "USDC": Decimal("1.00"),
    "USDT": Decimal("1.00"),
    "mSOL": Decimal("170.00"),
    "JUP": Decimal("0.80"),
    "RAY": Decimal("2.00"),
    "ORCA": Decimal("3.00"),
    "BONK": Decimal("0.00002"),
}

_DEFAULT_COINGECKO_IDS: dict[str, str] = {
    "SOL": "solana",
    "USDC": "usd-coin",
    "USDT": "tether",
    "mSOL": "msol",
    "JUP": "jupiter-exchange-solana",
    "RAY": "raydium",
    "ORCA": "orca",
    "BONK": "bonk",
}


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class RPCConfig(BaseSettings):
    """Solana JSON-RPC node settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_RPC__",
        case_sensitive=False,
    )

    url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    timeout: float = 30.0
    signature_limit: int = Field(
        default=1000,
        description="Most recent signatures fetched per address (results may be truncated)",
    )
    fetch_concurrency: int = 10
    envelope_timeout: float = Field(
        default=10.0,
        description="Seconds allowed for one getTransaction call before the envelope is skipped",
    )


class PriceConfig(BaseSettings):
    """USD price feed and fallback table settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_PRICES__",
        case_sensitive=False,
    )

    url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""
    timeout: float = 10.0
    refresh_interval: int = 300
    coingecko_ids: dict[str, str] = Field(default_factory=lambda: dict(_DEFAULT_COINGECKO_IDS))
    seed_prices: dict[str, Decimal] = Field(default_factory=lambda: dict(_DEFAULT_SEED_PRICES))
    unknown_token_price: Decimal = Decimal(0)


class PaymentConfig(BaseSettings):
    """Pay-to-export settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_PAYMENTS__",
        case_sensitive=False,
    )

    payment_address: str = "11111111111111111111111111111111"
    amount_lamports: int = 100_000_000  # 0.1 SOL
    ttl_seconds: int = 900
    retention_seconds: int = 3600
    lookback: int = 10
    expiry_sweep_period: int = 30
    purge_period: int = 3600
    store: PaymentStoreBackend = Field(
        default=PaymentStoreBackend.MEMORY,
        description="Payment request store: memory or database",
    )


class DatabaseConfig(BaseSettings):
    """Database settings (used by the database payment store)."""

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./solana_tax.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


class TaskConfig(BaseSettings):
    """Background cron job settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_TASK__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``SOLTAX_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLTAX_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""
    max_range_days: int = 365

    rpc: RPCConfig = Field(default_factory=RPCConfig)
    prices: PriceConfig = Field(default_factory=PriceConfig)
    payments: PaymentConfig = Field(default_factory=PaymentConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    task: TaskConfig = Field(default_factory=TaskConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
