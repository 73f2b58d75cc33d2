"""Fee estimation for token transfers.

The estimate covers the miner fee for a transaction spending ``utxo_count``
P2PKH inputs plus the value of the outputs the sender pays for (the
recipient's dust output). The validator adds a fixed surcharge on top.
"""

import logging
from typing import Optional

import httpx

from stxsend.config import Settings
from stxsend.errors import NetworkError
from stxsend.tx.builder import (
    DUMMY_CONSENSUS_HASH,
    estimate_tx_bytes,
    make_skeleton,
    sum_output_values,
)

logger = logging.getLogger(__name__)


class FeeEstimator:
    """Estimates token transfer fees in satoshis.

    Uses:
    - mempool.space style ``/v1/fees/recommended`` for the fee rate (fastestFee)
    - the transaction builder's size model for the transaction size
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.fee_rate_url = settings.fee_rate_url
        self.timeout = settings.http_timeout
        self.magic_bytes = settings.magic_bytes
        self.dust_minimum = settings.dust_minimum
        self._client = client

    async def get_fee_rate(self) -> int:
        """Current fee rate in sat/byte.

        Raises:
            NetworkError: If the rate cannot be fetched
        """
        try:
            if self._client is not None:
                response = await self._client.get(self.fee_rate_url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.fee_rate_url)
            response.raise_for_status()
            fees = response.json()
            rate = int(fees["fastestFee"])
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch fee rate: {e}")
            raise NetworkError(f"Failed to fetch fee rate: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed fee rate response: {e}") from e

        if rate <= 0:
            raise NetworkError(f"Invalid fee rate: {rate}")
        return rate

    def estimate(
        self,
        recipient: str,
        token_type: str,
        amount: int,
        memo: str,
        utxo_count: int,
        fee_rate: int,
    ) -> int:
        """Estimate the satoshis a transfer costs the sender.

        Args:
            recipient: Recipient base-chain address
            token_type: Token type tag
            amount: Token amount
            memo: Memo embedded in the payload
            utxo_count: Number of sender inputs (at least one is assumed)
            fee_rate: Fee rate in sat/byte

        Returns:
            Fee plus recipient dust, without the surcharge
        """
        skeleton = make_skeleton(
            recipient,
            DUMMY_CONSENSUS_HASH,
            token_type,
            amount,
            memo,
            magic_bytes=self.magic_bytes,
            dust_minimum=self.dust_minimum,
        )
        size = estimate_tx_bytes(skeleton, additional_inputs=max(utxo_count, 1), additional_outputs=1)
        return fee_rate * size + sum_output_values(skeleton)

    async def estimate_with_network(
        self, recipient: str, token_type: str, amount: int, memo: str, utxo_count: int
    ) -> int:
        """Fetch the current fee rate and estimate."""
        fee_rate = await self.get_fee_rate()
        return self.estimate(recipient, token_type, amount, memo, utxo_count, fee_rate)
