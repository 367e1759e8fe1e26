"""Application configuration using pydantic-settings.

Values come from environment variables (or a local .env file). The chain
registry itself is static data and lives in chainsend.chains; settings only
choose the network, endpoints of shared services and timing knobs.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    network: str = Field(default="mainnet", description="Selected network (mainnet/testnet)")
    locale: str = Field(default="en", description="Locale for user-facing messages")

    # ======================
    # Chain Registry
    # ======================
    chain_registry_file: Optional[str] = Field(
        default=None, description="Path to a JSON chain registry (built-in table if unset)"
    )
    privacy_testnet_patterns: str = Field(
        default="atlantic-2,arctic-1",
        description="Comma-separated chain id fragments that need the privacy chain client",
    )

    # ======================
    # IBC
    # ======================
    ibc_registry_url: str = Field(
        default="https://raw.githubusercontent.com/cosmos/chain-registry/master/_IBC",
        description="Base URL of the IBC channel registry",
    )
    ibc_timeout_seconds: int = Field(
        default=120, description="Seconds from now until an IBC transfer times out"
    )

    # ======================
    # HTTP / Polling
    # ======================
    http_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")
    poll_interval_seconds: float = Field(
        default=2.0, description="Delay between confirmation polls"
    )
    poll_timeout_seconds: float = Field(
        default=60.0, description="Give up polling for a transaction after this long"
    )

    @property
    def is_testnet(self) -> bool:
        """Check if the testnet network is selected."""
        return self.network.lower() == "testnet"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def privacy_patterns(self) -> list[str]:
        """Parse privacy chain id fragments into a list."""
        return [
            p.strip().lower() for p in self.privacy_testnet_patterns.split(",") if p.strip()
        ]

    def get_safe_dict(self) -> dict:
        """Return the effective configuration for diagnostics."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "network": self.network,
            "locale": self.locale,
            "chain_registry_file": self.chain_registry_file or "(built-in)",
            "ibc": {
                "registry_url": self.ibc_registry_url,
                "timeout_seconds": self.ibc_timeout_seconds,
            },
            "http": {
                "timeout": self.http_timeout,
                "poll_interval": self.poll_interval_seconds,
                "poll_timeout": self.poll_timeout_seconds,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging the same way for every entry point."""
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
