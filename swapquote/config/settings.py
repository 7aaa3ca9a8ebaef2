"""Application settings and configuration management."""

from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from ..core.amounts import Percent
from ..core.currency import Token
from ..swap.recipient import BAD_RECIPIENT_ADDRESSES
from ..swap.validation import DEFAULT_GAS_LIMIT

logger = structlog.get_logger(__name__)

PROFILES = ("dev", "staging", "prod")


class QuoteSourceConfig(BaseModel):
    """One liquidity source reachable over HTTP."""

    name: str = Field(description="Source identifier, e.g. uniswap or sushiswap")
    base_url: str = Field(description="Quote API base URL")
    api_key: str | None = Field(default=None, description="Optional API key")


class TokenConfig(BaseModel):
    """Token list entry."""

    address: str
    decimals: int = Field(ge=0, le=255)
    symbol: str
    name: str | None = None


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment
    env: Literal["dev", "staging", "prod"] = Field(
        description="Environment: dev, staging, prod"
    )

    # Chain access
    rpc_url: str = Field(description="Ethereum JSON-RPC URL")
    chain_id: int = Field(default=1, description="Chain id")
    ens_registry: str = Field(
        default="0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e",
        description="ENS registry address",
    )

    # Liquidity sources, in preference order
    quote_sources: list[QuoteSourceConfig] = Field(
        default_factory=list, description="Quote sources"
    )
    quote_timeout_seconds: float | None = Field(
        default=10.0, description="How long the runner waits for quotes"
    )

    # Fees and incentives
    gas_limit: int = Field(default=DEFAULT_GAS_LIMIT, description="Swap gas limit")
    eip1559: bool = Field(default=True, description="Variable base fee chain")
    bribe_margin: int = Field(
        default=5, ge=0, description="Incentive margin percent over gas cost"
    )
    min_trade_margin: int = Field(
        default=20,
        gt=0,
        le=100,
        description="Largest share (percent) of a trade the incentive may take",
    )

    # Trade selection
    slippage_bps: int = Field(
        default=50, ge=0, le=5000, description="Slippage tolerance in basis points"
    )
    hop_threshold_bps: int = Field(
        default=50,
        ge=0,
        description="Price band within which fewer hops win, in basis points",
    )

    # Recipients and tokens
    bad_recipient_addresses: list[str] = Field(
        default_factory=lambda: list(BAD_RECIPIENT_ADDRESSES),
        description="Addresses that must never receive swap output",
    )
    tokens: list[TokenConfig] = Field(default_factory=list, description="Token list")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def slippage(self) -> Percent:
        return Percent.from_bips(self.slippage_bps)

    @property
    def hop_threshold(self) -> Percent:
        return Percent.from_bips(self.hop_threshold_bps)

    def token_list(self) -> list[Token]:
        return [
            Token(chain_id=self.chain_id, **entry.model_dump()) for entry in self.tokens
        ]


def _validate_profile_safety(settings: AppSettings) -> None:
    """Reject settings that are unsafe for production."""
    if "localhost" in settings.rpc_url or "127.0.0.1" in settings.rpc_url:
        raise ValueError(
            f"Production profile cannot use a local RPC: {settings.rpc_url}"
        )
    if settings.slippage_bps > 1000:
        raise ValueError(
            f"Slippage {settings.slippage_bps} bps exceeds the 10% production limit"
        )
    if not settings.quote_sources:
        raise ValueError("Production profile needs at least one quote source")


def load_settings(profile: str, yaml_path: str) -> AppSettings:
    """Load settings from YAML file and environment variables.

    Args:
        profile: Configuration profile name (dev, staging, prod)
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If profile is invalid or prod settings are unsafe
    """
    if profile not in PROFILES:
        raise ValueError(
            f"Invalid profile: {profile}. Must be one of: {', '.join(PROFILES)}"
        )

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        yaml_config["env"] = profile

        logger.info("Loading configuration", profile=profile, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        if profile == "prod":
            _validate_profile_safety(settings)

        logger.info(
            "Configuration loaded successfully",
            profile=profile,
            chain_id=settings.chain_id,
            sources=[source.name for source in settings.quote_sources],
            rpc_url=settings.rpc_url[:50] + "..."
            if len(settings.rpc_url) > 50
            else settings.rpc_url,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
