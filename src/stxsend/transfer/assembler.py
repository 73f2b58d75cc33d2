"""Transaction assembly: build, fund and sign a prepared transfer."""

import logging

from stxsend.chain.base import ChainStateReader
from stxsend.config import Settings
from stxsend.errors import TransactionError
from stxsend.models import PreparedTransfer, SignedTransaction
from stxsend.signing.base import SignerBackend
from stxsend.tx.builder import fund_transaction, make_skeleton

logger = logging.getLogger(__name__)


class TransactionAssembler:
    """Builds the token transfer transaction and has the signer sign it.

    Every failure leaves this class as a TransactionError.
    """

    def __init__(self, settings: Settings, reader: ChainStateReader):
        self.settings = settings
        self.reader = reader

    async def assemble(self, prepared: PreparedTransfer, signer: SignerBackend) -> SignedTransaction:
        """Assemble and sign a transfer.

        Args:
            prepared: Admitted transfer
            signer: Backend for the sender's device

        Returns:
            SignedTransaction with the raw hex and the fee charged

        Raises:
            TransactionError: On any build, funding or signing failure
        """
        try:
            signer_address = await signer.get_address()
            if signer_address != prepared.sender_btc_address:
                raise TransactionError(
                    f"Signer address {signer_address} does not match sender {prepared.sender_btc_address}"
                )

            consensus_hash = await self.reader.get_consensus_hash()
            tx = make_skeleton(
                prepared.recipient_btc_address,
                consensus_hash,
                prepared.token_type,
                prepared.token_amount,
                prepared.memo,
                magic_bytes=self.settings.magic_bytes,
                dust_minimum=self.settings.dust_minimum,
            )
            funded = fund_transaction(
                tx,
                prepared.sender_btc_address,
                prepared.spendable_utxos,
                prepared.fee_rate,
                dust_minimum=self.settings.dust_minimum,
            )
            signed = await signer.sign(prepared, funded)

        except TransactionError as e:
            logger.error(f"Failed to assemble transfer from {prepared.sender_btc_address}: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to assemble transfer from {prepared.sender_btc_address}: {e}")
            raise TransactionError(str(e) or None) from e

        logger.info(
            f"Assembled transfer from {prepared.sender_btc_address}: "
            f"{len(funded.tx.inputs)} input(s), network fee {signed.network_fee} sats"
        )
        return signed
