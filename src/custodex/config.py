"""Application configuration using pydantic-settings.

Credentials for the custody API, the mainnet/testnet switch and optional
per-chain endpoint overrides. Chain defaults live in custodex.adapters.options.
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
    # Custody API
    # ======================
    custody_app_id: str = Field(default="", description="Custody API application id")
    custody_app_secret: str = Field(default="", description="Custody API application secret")
    custody_api_url: str = Field(
        default="https://api.privy.io/v1", description="Custody API base URL"
    )
    custody_timeout: float = Field(default=30.0, description="Custody API request timeout (seconds)")

    # ======================
    # Environment
    # ======================
    testnet: bool = Field(default=False, description="Use testnet defaults for every chain")
    debug: bool = Field(default=False, description="Enable debug logging")

    # ======================
    # Chain Endpoint Overrides
    # ======================
    btc_explorer_url: Optional[str] = Field(default=None, description="Esplora-compatible Bitcoin API URL")
    near_rpc_url: Optional[str] = Field(default=None, description="NEAR JSON-RPC URL")
    starknet_rpc_url: Optional[str] = Field(default=None, description="StarkNet JSON-RPC URL")
    ton_api_url: Optional[str] = Field(default=None, description="TON HTTP API v2 URL")
    solana_rpc_url: Optional[str] = Field(default=None, description="Solana JSON-RPC URL")
    sui_rpc_url: Optional[str] = Field(default=None, description="Sui JSON-RPC URL")
    aptos_node_url: Optional[str] = Field(default=None, description="Aptos fullnode REST URL")
    stellar_horizon_url: Optional[str] = Field(default=None, description="Stellar Horizon URL")
    cosmos_rest_url: Optional[str] = Field(default=None, description="Cosmos SDK REST URL")
    tron_api_url: Optional[str] = Field(default=None, description="TronGrid HTTP API URL")

    # ======================
    # Chain Parameters
    # ======================
    tron_api_key: str = Field(default="", description="TronGrid API key (TRON-PRO-API-KEY)")
    ton_api_key: str = Field(default="", description="toncenter API key (X-API-Key)")
    btc_fee_rate: Optional[int] = Field(default=None, description="Bitcoin fee rate (sat/vB)")
    btc_max_parallel_signatures: int = Field(
        default=1, description="Concurrent raw-sign calls per Bitcoin transfer (1 = sequential)"
    )
    btc_spend_unconfirmed: bool = Field(
        default=True, description="Allow Bitcoin transfers to spend unconfirmed UTXOs"
    )
    ethereum_chain_id: Optional[int] = Field(default=None, description="EVM chain id for custody RPC sends")

    @property
    def has_credentials(self) -> bool:
        """Check if custody API credentials are configured."""
        return bool(self.custody_app_id and self.custody_app_secret)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        data = self.model_dump()
        data["custody_app_secret"] = "***" if self.custody_app_secret else "(not set)"
        data["tron_api_key"] = "***" if self.tron_api_key else "(not set)"
        data["ton_api_key"] = "***" if self.ton_api_key else "(not set)"
        return data


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
