"""Application configuration using pydantic-settings.

Holds the ledger endpoint, the deployed program addresses and the single
faucet signing key. Everything is read from environment variables (or .env).
"""

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
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3001, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Ledger network
    # ======================
    rpc_url: str = Field(
        default="https://rpc.test.btcs.network", description="JSON-RPC endpoint of the ledger network"
    )
    chain_id: Optional[int] = Field(
        default=None, description="Chain ID (read from the node when unset)"
    )
    rpc_timeout: float = Field(default=10.0, description="Timeout for a single RPC call (seconds)")

    # ======================
    # Deployed programs
    # ======================
    stable_token_address: str = Field(
        default="0xFB5091dcB40995074f6D57f6Ab511A4D1BF6c9E9",
        description="Base collateral asset (stable token) address",
    )
    insurance_pool_address: str = Field(
        default="0xFC7C9E6Fb9B7dfDB166e437b132B4742Dd4ED9Fd",
        description="Insurance pool address",
    )
    order_book_address: str = Field(
        default="0xdAd7C6cA70CE9676B5DA5F1EaC17C42f75bf9CeB",
        description="Insurance order book address",
    )

    # ======================
    # Precision
    # ======================
    base_asset_decimals: int = Field(default=6, description="Decimals of the base collateral asset")
    instrument_decimals: int = Field(default=18, description="Decimals of insurance/claim tokens")
    price_decimals: int = Field(default=18, description="Decimals of strike and unit prices")

    # ======================
    # Order scanning
    # ======================
    order_scan_limit: int = Field(default=100, description="Default highest order id to scan")
    order_scan_max: int = Field(default=1000, description="Hard cap for a caller-supplied scan limit")
    order_scan_concurrency: int = Field(default=8, description="Concurrent order reads during a scan")
    order_read_timeout: float = Field(
        default=15.0, description="Time budget for reading one order during a scan (seconds)"
    )

    # ======================
    # Gas limits for prepared transactions
    # ======================
    gas_limit_issue: int = Field(default=5_000_000, description="Gas limit for issuance")
    gas_limit_order: int = Field(default=5_000_000, description="Gas limit for order creation/fill")
    gas_limit_small: int = Field(
        default=2_000_000, description="Gas limit for cancel/deposit/withdraw/finalize"
    )
    gas_limit_settle: int = Field(default=3_000_000, description="Gas limit for settle/redeem")

    # ======================
    # Faucet
    # ======================
    faucet_private_key: Optional[str] = Field(
        default=None, description="Private key of the faucet identity (owner of the stable token)"
    )
    faucet_amount: str = Field(default="10000", description="Stable token amount minted per request")
    faucet_gas_limit: int = Field(default=2_000_000, description="Gas limit for faucet mints")
    faucet_confirmation_timeout: float = Field(
        default=120.0, description="How long to wait for a faucet receipt (seconds)"
    )
    faucet_poll_interval: float = Field(
        default=2.0, description="Receipt polling interval (seconds)"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_faucet(self) -> bool:
        """Check if the faucet signing key is configured."""
        return bool(self.faucet_private_key)

    def get_contract_addresses(self) -> dict[str, str]:
        """Program addresses as published to clients."""
        return {
            "mockToken": self.stable_token_address,
            "insurancePool": self.insurance_pool_address,
            "insuranceOrderbook": self.order_book_address,
        }

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "rpc_url": self.rpc_url,
            "chain_id": self.chain_id,
            "contracts": self.get_contract_addresses(),
            "precision": {
                "base_asset": self.base_asset_decimals,
                "instrument": self.instrument_decimals,
                "price": self.price_decimals,
            },
            "orders": {
                "scan_limit": self.order_scan_limit,
                "scan_max": self.order_scan_max,
            },
            "faucet": {
                "private_key": "***" if self.faucet_private_key else "(not set)",
                "amount": self.faucet_amount,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
