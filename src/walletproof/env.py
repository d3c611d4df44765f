from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from .domain.amounts import DEFAULT_MAX_LAMPORTS, DEFAULT_MIN_LAMPORTS


class Settings(BaseModel):
    """Typed application settings built from environment variables."""

    # Storage: redis://host:port/db, file:///path/to/dir or a plain directory path
    database_url: str = "file://data"

    # Chain settings
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    receiving_address: str
    vanity_address: Optional[str] = None
    poll_interval_seconds: float = 10.0
    signature_limit: int = 10
    rpc_timeout_seconds: float = 10.0
    rpc_max_attempts: int = 3
    rpc_retry_delay_seconds: float = 0.5

    # Verification settings
    intent_ttl_seconds: int = 15 * 60
    sweep_interval_seconds: float = 5 * 60.0
    min_lamports: int = DEFAULT_MIN_LAMPORTS
    max_lamports: int = DEFAULT_MAX_LAMPORTS
    amount_collision_retries: int = 0
    match_policy: Literal["all", "first"] = "all"
    subscriber_queue_size: int = 100

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    api_debug: bool = False
    api_cors_origins: list[str] = ["*"]
    log_level: str = "info"

    # Application settings
    app_name: str = "WalletProof"
    app_version: str = "1.0.0"

    @field_validator("receiving_address")
    @classmethod
    def validate_receiving_address(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Receiving address cannot be empty")
        return v.strip()

    @field_validator(
        "poll_interval_seconds", "sweep_interval_seconds", "rpc_timeout_seconds"
    )
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Intervals and timeouts must be positive")
        return v

    @field_validator(
        "signature_limit", "intent_ttl_seconds", "rpc_max_attempts", "min_lamports"
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_lamport_range(self) -> "Settings":
        if self.max_lamports < self.min_lamports:
            raise ValueError("max_lamports must be >= min_lamports")
        return self

    @property
    def display_address(self) -> str:
        return self.vanity_address or self.receiving_address


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


def get_settings() -> Settings:
    """Return typed settings instance sourced from WALLETPROOF_* env vars."""
    return Settings(
        database_url=os.environ.get("WALLETPROOF_DATABASE_URL", "file://data"),
        solana_rpc_url=os.environ.get(
            "WALLETPROOF_SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com"
        ),
        receiving_address=os.environ.get("WALLETPROOF_RECEIVING_ADDRESS", ""),
        vanity_address=os.environ.get("WALLETPROOF_VANITY_ADDRESS") or None,
        poll_interval_seconds=float(
            os.environ.get("WALLETPROOF_POLL_INTERVAL_SECONDS", "10")
        ),
        signature_limit=int(os.environ.get("WALLETPROOF_SIGNATURE_LIMIT", "10")),
        rpc_timeout_seconds=float(
            os.environ.get("WALLETPROOF_RPC_TIMEOUT_SECONDS", "10")
        ),
        rpc_max_attempts=int(os.environ.get("WALLETPROOF_RPC_MAX_ATTEMPTS", "3")),
        rpc_retry_delay_seconds=float(
            os.environ.get("WALLETPROOF_RPC_RETRY_DELAY_SECONDS", "0.5")
        ),
        intent_ttl_seconds=int(os.environ.get("WALLETPROOF_INTENT_TTL_SECONDS", "900")),
        sweep_interval_seconds=float(
            os.environ.get("WALLETPROOF_SWEEP_INTERVAL_SECONDS", "300")
        ),
        min_lamports=int(
            os.environ.get("WALLETPROOF_MIN_LAMPORTS", str(DEFAULT_MIN_LAMPORTS))
        ),
        max_lamports=int(
            os.environ.get("WALLETPROOF_MAX_LAMPORTS", str(DEFAULT_MAX_LAMPORTS))
        ),
        amount_collision_retries=int(
            os.environ.get("WALLETPROOF_AMOUNT_COLLISION_RETRIES", "0")
        ),
        match_policy=os.environ.get("WALLETPROOF_MATCH_POLICY", "all"),
        subscriber_queue_size=int(
            os.environ.get("WALLETPROOF_SUBSCRIBER_QUEUE_SIZE", "100")
        ),
        api_host=os.environ.get("WALLETPROOF_API_HOST", "0.0.0.0"),
        api_port=int(os.environ.get("WALLETPROOF_API_PORT", "4000")),
        api_debug=_env_bool("WALLETPROOF_API_DEBUG"),
        api_cors_origins=os.environ.get("WALLETPROOF_API_CORS_ORIGINS", "*").split(","),
        log_level=os.environ.get("WALLETPROOF_LOG_LEVEL", "info"),
        app_name=os.environ.get("WALLETPROOF_APP_NAME", "WalletProof"),
        app_version=os.environ.get("WALLETPROOF_APP_VERSION", "1.0.0"),
    )
