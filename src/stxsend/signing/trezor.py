"""Trezor signing backend.

The sender address is resolved on the host and handed to the signer, so
``get_address`` needs no device round trip. Before signing, the signer checks
that the device key at the path actually controls that address.
"""

import logging

from stxsend.models import WalletType
from stxsend.signing.base import DeviceSigner, DeviceTransport

logger = logging.getLogger(__name__)


class TrezorSigner(DeviceSigner):
    """Signer for Trezor devices bound to a known sender address."""

    def __init__(
        self,
        sender_btc_address: str,
        transport: DeviceTransport,
        derivation_path: str,
        testnet: bool = False,
    ):
        """Initialize Trezor signer.

        Args:
            sender_btc_address: Sender's base58 address
            transport: Device connection
            derivation_path: BIP32 path of the sender key
            testnet: Derive testnet addresses
        """
        super().__init__(WalletType.TREZOR, transport, derivation_path, testnet)
        self.sender_btc_address = sender_btc_address

    async def get_address(self) -> str:
        return self.sender_btc_address
