"""Hardware signing backends.

Provides:
- LedgerSigner: address derived from the device key
- TrezorSigner: host-resolved address, cross-checked on the device
- SimulatedDevice: in-process device for dry runs and tests
"""

from stxsend.signing.base import DeviceTransport, SignerBackend
from stxsend.signing.factory import get_signer, register_transport
from stxsend.signing.ledger import LedgerSigner
from stxsend.signing.simulated import SimulatedDevice
from stxsend.signing.trezor import TrezorSigner

__all__ = [
    "DeviceTransport",
    "SignerBackend",
    "LedgerSigner",
    "TrezorSigner",
    "SimulatedDevice",
    "get_signer",
    "register_transport",
]
