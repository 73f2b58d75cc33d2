"""Signer factory.

Selects the signing backend for a wallet type. Device transports come from a
registry that hosts fill in at startup (one factory per device family); in
dry-run mode every family uses the simulated device instead.

SAFETY NOTE:
- dry_run defaults to True, so nothing touches a real device until a host
  disables it and registers a transport
"""

import logging
from typing import Callable, Optional

from stxsend.config import Settings
from stxsend.errors import SigningError
from stxsend.models import WalletType
from stxsend.signing.base import DeviceTransport, SignerBackend
from stxsend.signing.ledger import LedgerSigner
from stxsend.signing.simulated import DEFAULT_SEED, SimulatedDevice
from stxsend.signing.trezor import TrezorSigner

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], DeviceTransport]

_transports: dict[WalletType, TransportFactory] = {}


def register_transport(wallet_type: WalletType, factory: TransportFactory) -> None:
    """Register the transport factory for a device family.

    Args:
        wallet_type: Device family
        factory: Zero-argument callable returning a DeviceTransport
    """
    wallet_type = WalletType(wallet_type)
    _transports[wallet_type] = factory
    logger.info(f"Registered {wallet_type.value} transport")


def reset_transports() -> None:
    """Clear registered transports (for testing)."""
    _transports.clear()


def open_transport(wallet_type: WalletType, settings: Settings) -> DeviceTransport:
    """Get a transport for ``wallet_type``.

    Raises:
        SigningError: If no transport is registered for the family
    """
    if settings.dry_run:
        return SimulatedDevice(seed=settings.simulated_device_seed or DEFAULT_SEED)

    factory = _transports.get(wallet_type)
    if factory is None:
        raise SigningError(f"No {wallet_type.value} device transport available")
    return factory()


def get_signer(
    wallet_type: WalletType,
    settings: Settings,
    sender_btc_address: str,
    transport: Optional[DeviceTransport] = None,
) -> SignerBackend:
    """Create the signer for a wallet type.

    Args:
        wallet_type: Device family holding the sender key
        settings: Derivation path, network and dry-run flag
        sender_btc_address: Sender's base58 address (used by Trezor)
        transport: Explicit transport (defaults to the registry)

    Returns:
        SignerBackend instance
    """
    wallet_type = WalletType(wallet_type)
    if transport is None:
        transport = open_transport(wallet_type, settings)

    if wallet_type == WalletType.LEDGER:
        return LedgerSigner(transport, settings.derivation_path, testnet=settings.testnet)

    return TrezorSigner(
        sender_btc_address, transport, settings.derivation_path, testnet=settings.testnet
    )
