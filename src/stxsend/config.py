"""Application configuration using pydantic-settings.

Settings are loaded once from the environment, then passed explicitly to every
component so nothing reads process-wide state between validation and broadcast.
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
    # Network
    # ======================
    network: str = Field(default="mainnet", description="Bitcoin network (mainnet/testnet)")

    # ======================
    # Network Endpoints
    # ======================
    blockstack_api_url: str = Field(
        default="https://core.blockstack.org", description="Blockstack Core API URL"
    )
    utxo_provider_url: str = Field(
        default="https://blockchain.info", description="UTXO provider and broadcast relay URL"
    )
    fee_rate_url: str = Field(
        default="https://mempool.space/api/v1/fees/recommended",
        description="Fee rate endpoint (sat/byte, fastestFee)",
    )
    http_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # ======================
    # Token Transfer
    # ======================
    token_type: str = Field(default="STACKS", description="Token type tag in the transfer payload")
    magic_bytes: str = Field(default="id", description="Payload magic bytes")
    fee_surcharge: int = Field(
        default=5500, description="Satoshis added on top of the fee estimate"
    )
    dust_minimum: int = Field(default=5500, description="Dust value for recipient/change outputs")
    broadcast_success_phrase: str = Field(
        default="transaction submitted",
        description="Relay response substring that signals success (case-insensitive)",
    )
    min_confirmations: int = Field(
        default=0, description="Confirmations a UTXO needs to be spendable (0 = disabled)"
    )

    # ======================
    # Signing Devices
    # ======================
    derivation_path: str = Field(
        default="m/44'/5757'/0'/0/0", description="BIP32 path of the sender key on the device"
    )
    simulated_device_seed: Optional[str] = Field(
        default=None, description="Seed for the simulated signing device (dry-run only)"
    )

    # ======================
    # Safety Guards
    # ======================
    dry_run: bool = Field(default=True, description="Use the simulated device and skip broadcast")
    sender_lock_timeout: Optional[float] = Field(
        default=30.0, description="Seconds to wait for a sender's in-flight transfer"
    )

    @property
    def testnet(self) -> bool:
        """Check if addresses and relays target testnet."""
        return self.network.lower() == "testnet"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "network": self.network,
            "dry_run": self.dry_run,
            "endpoints": {
                "blockstack_api": self.blockstack_api_url,
                "utxo_provider": self.utxo_provider_url,
                "fee_rate": self.fee_rate_url,
            },
            "transfer": {
                "token_type": self.token_type,
                "fee_surcharge": self.fee_surcharge,
                "dust_minimum": self.dust_minimum,
                "min_confirmations": self.min_confirmations,
                "broadcast_success_phrase": self.broadcast_success_phrase,
            },
            "derivation_path": self.derivation_path,
            "simulated_device_seed": "***" if self.simulated_device_seed else "(not set)",
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
