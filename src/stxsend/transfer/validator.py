"""Transfer admission control.

Turns a TransferRequest into a PreparedTransfer, or raises the ValidationError
of the first failing gate. Gate order is fixed:

1. funding       - BTC balance covers the estimated fee
1b. confirmations - only when min_confirmations > 0
2. sufficiency   - token balance covers the amount
3. lock status   - tokens have reached their unlock height
"""

import logging

from stxsend.addresses import c32_to_b58
from stxsend.chain.base import ChainStateReader
from stxsend.chain.fees import FeeEstimator
from stxsend.config import Settings
from stxsend.errors import (
    InsufficientFundingBalance,
    InsufficientTokenBalance,
    PendingConfirmations,
    TokensLocked,
    ValidationError,
)
from stxsend.models import ChainSnapshot, PreparedTransfer, TransferRequest

logger = logging.getLogger(__name__)


def check_gates(
    snapshot: ChainSnapshot,
    token_amount: int,
    estimate: int,
    min_confirmations: int = 0,
) -> None:
    """Evaluate the admission gates against a snapshot.

    Pure: the same snapshot and arguments always give the same outcome.

    Raises:
        InsufficientFundingBalance: BTC balance below the estimate
        PendingConfirmations: Enough BTC, but not enough of it confirmed
        InsufficientTokenBalance: Token balance below the amount
        TokensLocked: Unlock height not reached
    """
    balance = snapshot.btc_balance
    if balance < estimate:
        raise InsufficientFundingBalance(estimate=estimate, balance=balance)

    if min_confirmations > 0:
        confirmed = snapshot.confirmed_balance(min_confirmations)
        if confirmed < estimate:
            raise PendingConfirmations(estimate=estimate, confirmed_balance=confirmed)

    if snapshot.account_balance < token_amount:
        raise InsufficientTokenBalance(balance=snapshot.account_balance, amount=token_amount)

    unlock_height = snapshot.account_status.lock_transfer_block_id
    if unlock_height > snapshot.block_height:
        raise TokensLocked(unlock_height=unlock_height, block_height=snapshot.block_height)


class TransferValidator:
    """Admits transfer requests against live chain and account state."""

    def __init__(self, settings: Settings, reader: ChainStateReader, estimator: FeeEstimator):
        self.settings = settings
        self.reader = reader
        self.estimator = estimator

    async def validate(self, request: TransferRequest) -> PreparedTransfer:
        """Validate a request.

        Args:
            request: Transfer to admit

        Returns:
            PreparedTransfer (proof that every gate passed)

        Raises:
            InvalidAddressError: If either address is malformed
            NetworkError: If chain state or the fee rate cannot be read
            ValidationError: From the first failing gate
        """
        settings = self.settings
        sender_btc_address = c32_to_b58(request.sender_address)
        recipient_btc_address = c32_to_b58(request.recipient_address)

        snapshot = await self.reader.read_snapshot(sender_btc_address, settings.token_type)
        fee_rate = await self.estimator.get_fee_rate()

        utxo_count = len(snapshot.spendable_utxos(settings.min_confirmations))
        estimate = self.estimator.estimate(
            recipient_btc_address,
            settings.token_type,
            request.amount,
            request.memo,
            utxo_count,
            fee_rate,
        ) + settings.fee_surcharge

        try:
            check_gates(snapshot, request.amount, estimate, settings.min_confirmations)
        except ValidationError as e:
            logger.warning(f"Transfer from {request.sender_address} rejected: {e}")
            raise

        logger.info(
            f"Transfer validated: {request.amount} {settings.token_type} "
            f"{sender_btc_address} -> {recipient_btc_address}, fee estimate {estimate} sats"
        )
        return PreparedTransfer(
            sender_btc_address=sender_btc_address,
            recipient_btc_address=recipient_btc_address,
            token_type=settings.token_type,
            token_amount=request.amount,
            memo=request.memo,
            wallet_type=request.wallet_type,
            snapshot=snapshot,
            estimated_fee=estimate,
            fee_rate=fee_rate,
            min_confirmations=settings.min_confirmations,
        )
