"""Application settings and configuration management."""

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
import yaml
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..core.types import Criteria

logger = structlog.get_logger(__name__)

DEFAULT_ALLOWED_NETWORKS = [
    "solana",
    "base",
    "bsc",
    "eth",
    "polygon_pos",
    "arbitrum",
    "avax",
]


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    env: Literal["dev", "prod"] = Field(description="Environment: dev, prod")

    # Networks
    networks: list[str] = Field(
        default_factory=lambda: ["solana", "base", "bsc"],
        description="Networks to scan",
    )
    allowed_networks: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_NETWORKS),
        description="Network allow-list",
    )

    # API endpoints
    geckoterminal_base: str = Field(
        default="https://api.geckoterminal.com/api/v2",
        description="GeckoTerminal API base URL",
    )
    goplus_base: str = Field(
        default="https://api.gopluslabs.io/api/v1",
        description="GoPlus security API base URL",
    )

    # Scheduling
    scan_interval_seconds: float = Field(
        default=60.0, gt=0, description="Seconds between scan ticks"
    )
    page_count: int = Field(
        default=10, ge=1, le=10, description="New pool pages fetched per network"
    )
    page_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for one page fetch"
    )
    security_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for one security check"
    )
    requests_per_minute: int = Field(
        default=30, ge=1, description="GeckoTerminal request budget per minute"
    )

    # Criteria
    min_liquidity: float = Field(default=5000.0, ge=0, description="Min reserve USD")
    min_vol_mc_ratio: float = Field(
        default=0.15, ge=0, description="Min 24h volume / market cap ratio"
    )
    min_tx_1h: int = Field(default=50, ge=0, description="Min transactions in 1h")

    # Alerting
    hype_threshold: int = Field(
        default=85, ge=0, le=100, description="Min hype score to alert"
    )
    trust_threshold: int = Field(
        default=70, ge=0, le=100, description="Min trust score to alert"
    )
    reset_minute: int = Field(
        default=0, ge=0, le=59, description="Wall-clock minute of the hourly reset"
    )
    reset_timezone: str | None = Field(
        default=None, description="IANA timezone of the hourly window; local if unset"
    )

    # Notifications
    telegram_bot_token: str | None = Field(
        default=None, description="Telegram bot token"
    )
    telegram_chat_ids: list[int] = Field(
        default_factory=list, description="Telegram chat IDs to alert"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("networks", "allowed_networks")
    @classmethod
    def _normalize_networks(cls, value: list[str]) -> list[str]:
        networks = [network.strip().lower() for network in value]
        if any(not network for network in networks):
            raise ValueError("Network names must be non-empty")
        return networks

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @field_validator("reset_timezone")
    @classmethod
    def _check_reset_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @model_validator(mode="after")
    def _check_networks_allowed(self) -> "AppSettings":
        if not self.networks:
            raise ValueError("At least one network must be configured")
        unknown = [n for n in self.networks if n not in self.allowed_networks]
        if unknown:
            raise ValueError(
                f"Networks not in allow-list: {', '.join(unknown)}. "
                f"Allowed: {', '.join(self.allowed_networks)}"
            )
        return self

    @property
    def criteria(self) -> Criteria:
        """Criteria thresholds for the pool filter."""
        return Criteria(
            min_liquidity=self.min_liquidity,
            min_vol_mc_ratio=self.min_vol_mc_ratio,
            min_tx_1h=self.min_tx_1h,
        )

    @property
    def reset_tz(self) -> ZoneInfo | None:
        """Timezone of the hourly alert window, None for local time."""
        return ZoneInfo(self.reset_timezone) if self.reset_timezone else None


def load_settings(profile: str, yaml_path: str) -> AppSettings:
    """Load settings from YAML file and environment variables.

    Args:
        profile: Configuration profile name (dev, prod)
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If profile is invalid
    """
    if profile not in ["dev", "prod"]:
        raise ValueError(f"Invalid profile: {profile}. Must be one of: dev, prod")

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError("Invalid YAML configuration: expected a mapping")

        yaml_config["env"] = profile

        logger.info("Loading configuration", profile=profile, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            profile=profile,
            networks=settings.networks,
            scan_interval_seconds=settings.scan_interval_seconds,
            hype_threshold=settings.hype_threshold,
            trust_threshold=settings.trust_threshold,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
