"""Base interfaces for hardware signing.

Signing flow:
1. Assembler builds and funds the unsigned transaction
2. Signer opens its device transport and reads the public key at the path
3. Device signs each input; only DER signatures come back
4. Signer applies the signatures and serializes the transaction

Private keys never leave the device. The transport boundary carries BIP32
paths, public keys, the unsigned transaction and signatures only.
"""

import logging
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from bip_utils import Bip32PathError, Bip32PathParser

from stxsend.addresses import p2pkh_address
from stxsend.errors import KeyMismatchError, SigningError
from stxsend.models import PreparedTransfer, SignedTransaction, WalletType
from stxsend.tx.builder import FundedTransaction
from stxsend.tx.script import address_to_script, p2pkh_script_sig
from stxsend.tx.transaction import SIGHASH_ALL
from stxsend.utils.locks import device_lock

logger = logging.getLogger(__name__)


@runtime_checkable
class DeviceTransport(Protocol):
    """Connection to a signing device."""

    name: str

    async def open(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def get_public_key(self, address_n: list[int]) -> bytes:
        """Compressed secp256k1 public key at ``address_n``."""
        ...

    async def sign_input(
        self, address_n: list[int], unsigned_tx: bytes, index: int, script_code: bytes
    ) -> bytes:
        """DER signature (SIGHASH_ALL, without the hashtype byte) for one input."""
        ...


def parse_derivation_path(path: str) -> list[int]:
    """Convert ``m/44'/5757'/0'/0/0`` into BIP32 indexes (hardened bit set).

    Raises:
        SigningError: If the path is malformed
    """
    try:
        return Bip32PathParser.Parse(path).ToList()
    except Bip32PathError as e:
        raise SigningError(f"Invalid derivation path {path!r}: {e}") from e


class SignerBackend(ABC):
    """Abstract base class for signing backends.

    Implementations never see raw private keys.
    """

    def __init__(self, wallet_type: WalletType):
        self.wallet_type = wallet_type

    @abstractmethod
    async def get_address(self) -> str:
        """Base-chain address controlled by this signer.

        Raises:
            SigningError: If the address cannot be determined
        """
        pass

    @abstractmethod
    async def sign(self, prepared: PreparedTransfer, funded: FundedTransaction) -> SignedTransaction:
        """Sign every input of a funded transfer transaction.

        Args:
            prepared: Admitted transfer (fee echo, sender address)
            funded: Unsigned transaction and the UTXOs it spends

        Returns:
            SignedTransaction with the serialized transaction

        Raises:
            SigningError: On disconnection, user rejection, timeout or key mismatch
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.wallet_type.value})"


class DeviceSigner(SignerBackend):
    """Signer that drives a DeviceTransport for one P2PKH key."""

    def __init__(
        self,
        wallet_type: WalletType,
        transport: DeviceTransport,
        derivation_path: str,
        testnet: bool = False,
    ):
        super().__init__(wallet_type)
        self.transport = transport
        self.derivation_path = derivation_path
        self.address_n = parse_derivation_path(derivation_path)
        self.testnet = testnet

    async def _read_public_key(self) -> bytes:
        try:
            return await self.transport.get_public_key(self.address_n)
        except SigningError:
            raise
        except Exception as e:
            raise SigningError(f"Failed to read public key from {self.transport.name}: {e}") from e

    async def close_transport(self) -> None:
        """Close the transport without masking an earlier failure."""
        try:
            await self.transport.close()
        except Exception as e:
            logger.warning(f"Failed to close {self.transport.name}: {e}")

    async def sign(self, prepared: PreparedTransfer, funded: FundedTransaction) -> SignedTransaction:
        tx = funded.tx

        async with device_lock(self.wallet_type.value):
            try:
                await self.transport.open()
                public_key = await self._read_public_key()

                device_address = p2pkh_address(public_key, testnet=self.testnet)
                if device_address != prepared.sender_btc_address:
                    raise KeyMismatchError(
                        f"Device key at {self.derivation_path} controls {device_address}, "
                        f"not {prepared.sender_btc_address}"
                    )

                script_code = address_to_script(device_address)
                unsigned = tx.raw()
                script_sigs = []
                for index in range(len(tx.inputs)):
                    der = await self.transport.sign_input(self.address_n, unsigned, index, script_code)
                    script_sigs.append(p2pkh_script_sig(der + bytes([SIGHASH_ALL]), public_key))
            except SigningError:
                raise
            except Exception as e:
                logger.error(f"Signing on {self.transport.name} failed: {e}")
                raise SigningError(f"Signing on {self.transport.name} failed: {e}") from e
            finally:
                await self.close_transport()

        for txin, script_sig in zip(tx.inputs, script_sigs):
            txin.unlocking_script = script_sig

        logger.info(f"Signed {len(tx.inputs)} input(s) with {self.wallet_type.value} signer")
        return SignedTransaction(
            raw_tx=tx.raw_hex(),
            fee_charged=prepared.estimated_fee,
            network_fee=funded.network_fee,
        )
