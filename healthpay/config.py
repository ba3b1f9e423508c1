import os
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator, model_validator

from .networks import NETWORKS, NetworkConfig, TokenConfig, get_network
from .types import NetworkType, StrategyType


class Settings(BaseModel):
    """Typed engine settings built from HEALTHPAY_* environment variables."""

    settlement_url: str = "https://api.x402.com"
    network: NetworkType = "base"
    token: str = "USDC"
    strategy: StrategyType = "gateway"
    # Where confirmations and balances are read from
    confirmation_source: Literal["settlement", "chain"] = "settlement"
    rpc_url: Optional[str] = None

    request_timeout: float = 30.0
    payment_timeout_seconds: int = 3600
    auto_approve: bool = True

    # Retry / polling policy
    max_attempts: int = 3
    retry_base_delay: float = 1.0
    poll_interval: float = 2.0
    confirmation_timeout: float = 60.0
    min_confirmations: int = 1

    max_workers: int = 4
    log_level: str = "INFO"
    debug: bool = False

    @field_validator("settlement_url", "rpc_url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("URL must start with http:// or https://")
        if not parsed.netloc:
            raise ValueError("URL must include a host")
        return v.rstrip("/")

    @field_validator("max_attempts", "min_confirmations", "max_workers")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("retry_base_delay", "poll_interval", "confirmation_timeout", "request_timeout")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("token")
    @classmethod
    def normalize_token(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_token_on_network(self) -> "Settings":
        # Raises ValueError for unsupported pairs
        NETWORKS[self.network].token(self.token)
        return self

    @property
    def network_config(self) -> NetworkConfig:
        return get_network(self.network)

    @property
    def token_config(self) -> TokenConfig:
        return self.network_config.token(self.token)

    @property
    def resolved_rpc_url(self) -> str:
        return self.rpc_url or self.network_config.rpc_url


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


def get_settings() -> Settings:
    """Return typed settings instance sourced from env vars."""
    return Settings(
        settlement_url=os.environ.get("HEALTHPAY_SETTLEMENT_URL", "https://api.x402.com"),
        network=os.environ.get("HEALTHPAY_NETWORK", "base"),
        token=os.environ.get("HEALTHPAY_TOKEN", "USDC"),
        strategy=os.environ.get("HEALTHPAY_STRATEGY", "gateway"),
        confirmation_source=os.environ.get("HEALTHPAY_CONFIRMATION_SOURCE", "settlement"),
        rpc_url=os.environ.get("HEALTHPAY_RPC_URL") or None,
        request_timeout=float(os.environ.get("HEALTHPAY_REQUEST_TIMEOUT", "30")),
        payment_timeout_seconds=int(os.environ.get("HEALTHPAY_PAYMENT_TIMEOUT_SECONDS", "3600")),
        auto_approve=_env_bool("HEALTHPAY_AUTO_APPROVE", "true"),
        max_attempts=int(os.environ.get("HEALTHPAY_MAX_ATTEMPTS", "3")),
        retry_base_delay=float(os.environ.get("HEALTHPAY_RETRY_BASE_DELAY", "1.0")),
        poll_interval=float(os.environ.get("HEALTHPAY_POLL_INTERVAL", "2.0")),
        confirmation_timeout=float(os.environ.get("HEALTHPAY_CONFIRMATION_TIMEOUT", "60")),
        min_confirmations=int(os.environ.get("HEALTHPAY_MIN_CONFIRMATIONS", "1")),
        max_workers=int(os.environ.get("HEALTHPAY_MAX_WORKERS", "4")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        debug=_env_bool("HEALTHPAY_DEBUG", "false"),
    )
