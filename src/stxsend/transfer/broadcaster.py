"""Broadcast relay client.

The relay (blockchain.info ``/pushtx``) answers in plain text. Success is a
case-insensitive substring match; anything else is a rejection carrying the
relay's body. The transaction id is always derived from the raw transaction,
never read from the response.
"""

import logging
from typing import Optional

import httpx

from stxsend.config import Settings
from stxsend.errors import BroadcastError, BroadcastRejected
from stxsend.tx.transaction import raw_txid

logger = logging.getLogger(__name__)


def txid_from_raw(raw_tx: str) -> str:
    """Big-endian hex id of a raw transaction.

    Raises:
        ValueError: If ``raw_tx`` is not a parseable transaction
    """
    return raw_txid(raw_tx)


def parse_broadcast_response(text: str, raw_tx: str, success_phrase: str = "transaction submitted") -> str:
    """Interpret a relay response.

    Args:
        text: Response body
        raw_tx: Hex transaction that was submitted
        success_phrase: Substring signalling acceptance

    Returns:
        Transaction id (big-endian hex)

    Raises:
        BroadcastRejected: If the body does not contain the success phrase
    """
    if success_phrase.lower() not in text.lower():
        raise BroadcastRejected(text)
    return txid_from_raw(raw_tx)


class Broadcaster:
    """Submits signed transactions to the relay."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        """Initialize broadcaster.

        Args:
            settings: Relay URL, success phrase and dry-run flag
            client: Optional shared HTTP client (owned by the caller)
        """
        self.relay_url = settings.utxo_provider_url.rstrip("/")
        self.timeout = settings.http_timeout
        self.success_phrase = settings.broadcast_success_phrase
        self.dry_run = settings.dry_run
        self._client = client

    async def _post(self, raw_tx: str) -> str:
        if self._client is not None:
            response = await self._client.post(
                f"{self.relay_url}/pushtx", params={"cors": "true"}, data={"tx": raw_tx}
            )
            return response.text

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.relay_url}/pushtx", params={"cors": "true"}, data={"tx": raw_tx}
            )
            return response.text

    async def broadcast(self, raw_tx: str) -> str:
        """Broadcast a raw transaction.

        Args:
            raw_tx: Signed transaction, hex

        Returns:
            Transaction id (big-endian hex)

        Raises:
            BroadcastRejected: Relay answered without accepting
            BroadcastError: Relay unreachable or the payload is unparseable
        """
        if self.dry_run:
            try:
                txid = txid_from_raw(raw_tx)
            except ValueError as e:
                raise BroadcastError(f"Invalid raw transaction: {e}") from e
            logger.info(f"[DRY RUN] Would broadcast {txid} to {self.relay_url}/pushtx")
            return txid

        try:
            text = await self._post(raw_tx)
        except httpx.HTTPError as e:
            logger.error(f"Broadcast failed: {e}")
            raise BroadcastError(f"Transaction broadcast failed: {e}") from e

        try:
            txid = parse_broadcast_response(text, raw_tx, self.success_phrase)
        except BroadcastRejected:
            logger.warning(f"Relay rejected transaction: {text}")
            raise
        except ValueError as e:
            raise BroadcastError(f"Broadcast accepted but transaction id could not be derived: {e}") from e

        logger.info(f"Broadcast transaction {txid}")
        return txid
