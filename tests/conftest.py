"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio

from stxsend.addresses import b58_to_c32, p2pkh_address
from stxsend.chain.base import SimulatedChainReader
from stxsend.config import Settings
from stxsend.models import Utxo
from stxsend.signing.base import parse_derivation_path
from stxsend.signing.factory import reset_transports
from stxsend.signing.simulated import SimulatedDevice
from stxsend.utils.locks import clear_locks

SENDER_PATH = "m/44'/5757'/0'/0/0"
RECIPIENT_PATH = "m/44'/5757'/0'/0/1"

# Genesis block coinbase: a raw transaction with a well-known hash
GENESIS_COINBASE_HEX = (
    "01000000010000000000000000000000000000000000000000000000000000000000000000ffffffff"
    "4d04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368616e63656c6c6f72"
    "206f6e206272696e6b206f66207365636f6e64206261696c6f757420666f722062616e6b73ffffffff"
    "0100f2052a01000000434104678afdb0fe5548271967f1a67130b7105cd6a828e03909a67962e0ea1f"
    "61deb649f6bc3f4cef38c4f35504e51ec112de5c384df7ba0b8d578a4c702b6bf11d5fac00000000"
)
GENESIS_COINBASE_HASH = "3ba3edfd7a7b12b27ac72c3e67768f617fc81bc3888a51323a9fb8aa4b1e5e4a"
GENESIS_COINBASE_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"


@pytest.fixture(autouse=True)
def reset_state():
    """Clear lock and transport registries between tests."""
    clear_locks()
    reset_transports()
    yield
    clear_locks()
    reset_transports()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        blockstack_api_url="https://core.test",
        utxo_provider_url="https://utxo.test",
        fee_rate_url="https://fees.test/api/v1/fees/recommended",
        dry_run=False,
        min_confirmations=0,
        sender_lock_timeout=5.0,
    )


@pytest.fixture
def device() -> SimulatedDevice:
    return SimulatedDevice(seed="test-seed")


@pytest_asyncio.fixture
async def sender_btc_address(device) -> str:
    public_key = await device.get_public_key(parse_derivation_path(SENDER_PATH))
    return p2pkh_address(public_key)


@pytest_asyncio.fixture
async def recipient_btc_address(device) -> str:
    public_key = await device.get_public_key(parse_derivation_path(RECIPIENT_PATH))
    return p2pkh_address(public_key)


@pytest.fixture
def sender_address(sender_btc_address) -> str:
    return b58_to_c32(sender_btc_address)


@pytest.fixture
def recipient_address(recipient_btc_address) -> str:
    return b58_to_c32(recipient_btc_address)


@pytest.fixture
def utxos() -> list[Utxo]:
    return [
        Utxo(tx_hash="11" * 32, output_index=0, value=1_500_000, confirmations=6),
        Utxo(tx_hash="22" * 32, output_index=1, value=500_000, confirmations=0),
    ]


@pytest.fixture
def chain(utxos) -> SimulatedChainReader:
    """Funded sender with 1000 STX, unlocked."""
    return SimulatedChainReader(
        utxos=utxos,
        account_balance=1_000_000_000,
        lock_transfer_block_id=0,
        block_height=600000,
        consensus_hash="ab" * 16,
    )
