"""Transfer pipeline: validate -> assemble -> broadcast.

One run per user send action. Runs for the same sender are serialized with
SenderLock so two sends cannot both pass validation against one balance.
``send`` never raises; every outcome is a TransferResult.
"""

import logging
from typing import Callable, Optional

import httpx

from stxsend.addresses import c32_to_b58
from stxsend.chain.base import ChainStateReader
from stxsend.chain.blockstack import BlockstackChainReader
from stxsend.chain.fees import FeeEstimator
from stxsend.config import Settings
from stxsend.errors import TransactionError, TransferError
from stxsend.models import PreparedTransfer, SignedTransaction, TransferRequest, TransferResult
from stxsend.signing.base import DeviceTransport, SignerBackend
from stxsend.signing.factory import get_signer
from stxsend.transfer.assembler import TransactionAssembler
from stxsend.transfer.broadcaster import Broadcaster
from stxsend.transfer.validator import TransferValidator
from stxsend.utils.locks import LockTimeoutError, SenderLock

logger = logging.getLogger(__name__)

SignerFactory = Callable[..., SignerBackend]


class TransferPipeline:
    """Runs token transfers end to end."""

    def __init__(
        self,
        settings: Settings,
        reader: Optional[ChainStateReader] = None,
        estimator: Optional[FeeEstimator] = None,
        broadcaster: Optional[Broadcaster] = None,
        signer_factory: SignerFactory = get_signer,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize pipeline.

        Args:
            settings: Configuration shared by every stage
            reader: Chain state reader (defaults to Blockstack Core over HTTP)
            estimator: Fee estimator
            broadcaster: Relay client
            signer_factory: ``get_signer``-compatible callable
            client: Optional shared HTTP client for the default components
        """
        self.settings = settings
        self.reader = reader or BlockstackChainReader(settings, client)
        self.estimator = estimator or FeeEstimator(settings, client)
        self.broadcaster = broadcaster or Broadcaster(settings, client)
        self.signer_factory = signer_factory
        self.validator = TransferValidator(settings, self.reader, self.estimator)
        self.assembler = TransactionAssembler(settings, self.reader)

    async def prepare(self, request: TransferRequest) -> PreparedTransfer:
        return await self.validator.validate(request)

    async def generate(
        self, prepared: PreparedTransfer, transport: Optional[DeviceTransport] = None
    ) -> SignedTransaction:
        """Sign a prepared transfer with the signer for its wallet type."""
        signer = self.signer_factory(
            prepared.wallet_type, self.settings, prepared.sender_btc_address, transport
        )
        return await self.assembler.assemble(prepared, signer)

    async def broadcast(self, raw_tx: str) -> str:
        return await self.broadcaster.broadcast(raw_tx)

    async def send(
        self, request: TransferRequest, transport: Optional[DeviceTransport] = None
    ) -> TransferResult:
        """Run one transfer.

        Args:
            request: Transfer to send
            transport: Explicit device transport (defaults to the registry)

        Returns:
            TransferResult; on broadcast failure it still carries the signed raw_tx
        """
        try:
            # one lock per account, whatever spelling of the address was given
            async with SenderLock(
                c32_to_b58(request.sender_address),
                timeout=self.settings.sender_lock_timeout,
                operation="send",
            ):
                prepared = await self.prepare(request)
                signed = await self.generate(prepared, transport)

                try:
                    txid = await self.broadcast(signed.raw_tx)
                except TransferError as e:
                    logger.warning(f"Signed transaction from {request.sender_address} was not broadcast: {e}")
                    return TransferResult(
                        success=False, fee=signed.fee_charged, raw_tx=signed.raw_tx, error=e
                    )

        except TransferError as e:
            return TransferResult(success=False, error=e)
        except (ValueError, LockTimeoutError) as e:
            logger.warning(f"Transfer from {request.sender_address} failed: {e}")
            return TransferResult(success=False, error=TransactionError(str(e)))

        logger.info(f"Transfer from {request.sender_address} sent: {txid}")
        return TransferResult(success=True, txid=txid, fee=signed.fee_charged, raw_tx=signed.raw_tx)

    async def close(self) -> None:
        """Close HTTP clients owned by the default reader."""
        if isinstance(self.reader, BlockstackChainReader):
            await self.reader.close()
