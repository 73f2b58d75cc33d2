"""Simulated signing device.

In-process DeviceTransport for dry runs and tests. Keys are derived from a
seed and the BIP32 path, so the same seed always yields the same addresses.
Not a wallet: never put funds on these keys.
"""

import hashlib
import logging

from ecdsa import SECP256k1, SigningKey
from ecdsa.util import sigencode_der_canonize

from stxsend.errors import SigningError
from stxsend.tx.transaction import signature_hash

logger = logging.getLogger(__name__)

DEFAULT_SEED = "stxsend-simulated-device"


class SimulatedDevice:
    """Deterministic secp256k1 device (RFC 6979 nonces, low-S DER)."""

    def __init__(self, seed: str = DEFAULT_SEED, name: str = "simulated"):
        self.seed = seed
        self.name = name
        self.is_open = False
        self.reject = False
        self.signatures = 0

    def _signing_key(self, address_n: list[int]) -> SigningKey:
        path = "/".join(str(i) for i in address_n)
        secret = hashlib.sha256(f"{self.seed}:{path}".encode()).digest()
        return SigningKey.from_string(secret, curve=SECP256k1)

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def get_public_key(self, address_n: list[int]) -> bytes:
        return self._signing_key(address_n).get_verifying_key().to_string("compressed")

    async def sign_input(
        self, address_n: list[int], unsigned_tx: bytes, index: int, script_code: bytes
    ) -> bytes:
        if not self.is_open:
            raise SigningError(f"Device {self.name} is not connected")
        if self.reject:
            raise SigningError("Transaction rejected on device")

        digest = signature_hash(unsigned_tx, index, script_code)
        signature = self._signing_key(address_n).sign_digest_deterministic(
            digest,
            hashfunc=hashlib.sha256,
            sigencode=sigencode_der_canonize,
        )
        self.signatures += 1
        logger.debug(f"Simulated device signed input {index}")
        return signature
