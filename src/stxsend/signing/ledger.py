"""Ledger signing backend.

The sender address is whatever the device key at the configured path
controls; it is read from the device on first use and cached.
"""

import logging
from typing import Optional

from stxsend.addresses import p2pkh_address
from stxsend.errors import SigningError
from stxsend.models import WalletType
from stxsend.signing.base import DeviceSigner, DeviceTransport
from stxsend.utils.locks import device_lock

logger = logging.getLogger(__name__)


class LedgerSigner(DeviceSigner):
    """Signer for Ledger devices over the active HID transport."""

    def __init__(self, transport: DeviceTransport, derivation_path: str, testnet: bool = False):
        super().__init__(WalletType.LEDGER, transport, derivation_path, testnet)
        self._address: Optional[str] = None

    async def get_address(self) -> str:
        if self._address is None:
            async with device_lock(self.wallet_type.value):
                try:
                    await self.transport.open()
                    public_key = await self._read_public_key()
                except SigningError:
                    raise
                except Exception as e:
                    raise SigningError(f"Failed to connect to {self.transport.name}: {e}") from e
                finally:
                    await self.close_transport()
            self._address = p2pkh_address(public_key, testnet=self.testnet)
            logger.info(f"Ledger address at {self.derivation_path}: {self._address}")
        return self._address
