"""Blockstack Core + blockchain.info backed chain state reader.

Token ledger state comes from the Blockstack Core API, UTXOs and the block
height from the UTXO provider (blockchain.info API shape).
"""

import logging
from typing import Any, Optional

import httpx

from stxsend.chain.base import ChainStateReader
from stxsend.config import Settings
from stxsend.errors import NetworkError
from stxsend.models import AccountStatus, Utxo

logger = logging.getLogger(__name__)

NO_FREE_OUTPUTS = "No free outputs to spend"


class BlockstackChainReader(ChainStateReader):
    """Chain state reader over HTTP.

    No retries: a failed read fails the whole snapshot.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        """Initialize reader.

        Args:
            settings: Endpoints and timeout
            client: Optional shared HTTP client (owned by the caller)
        """
        self.api_url = settings.blockstack_api_url.rstrip("/")
        self.utxo_url = settings.utxo_provider_url.rstrip("/")
        self.timeout = settings.http_timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise NetworkError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Malformed response from {url}: {e}") from e

    async def get_utxos(self, address: str) -> list[Utxo]:
        client = await self._get_client()
        url = f"{self.utxo_url}/unspent"
        params = {"format": "json", "active": address, "cors": "true"}

        try:
            response = await client.get(url, params=params)
            if response.status_code == 500 and NO_FREE_OUTPUTS in response.text:
                return []
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to get UTXOs for {address}: {e}")
            raise NetworkError(f"Failed to get UTXOs for {address}: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Malformed UTXO response for {address}: {e}") from e

        try:
            return [
                Utxo(
                    tx_hash=item["tx_hash_big_endian"],
                    output_index=int(item["tx_output_n"]),
                    value=int(item["value"]),
                    confirmations=int(item.get("confirmations", 0)),
                )
                for item in data.get("unspent_outputs", [])
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise NetworkError(f"Malformed UTXO response for {address}: {e}") from e

    async def get_account_balance(self, address: str, token_type: str) -> int:
        data = await self._get_json(f"{self.api_url}/v1/accounts/{address}/{token_type}/balance")
        try:
            return int(data["balance"])
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed balance response for {address}: {e}") from e

    async def get_account_status(self, address: str, token_type: str) -> AccountStatus:
        url = f"{self.api_url}/v1/accounts/{address}/{token_type}/status"
        client = await self._get_client()

        try:
            response = await client.get(url)
            if response.status_code == 404:
                raise NetworkError(f"Account not found: {address}")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to get account status for {address}: {e}")
            raise NetworkError(f"Failed to get account status for {address}: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Malformed account status for {address}: {e}") from e

        if not isinstance(data, dict) or data.get("error"):
            error = data.get("error") if isinstance(data, dict) else data
            raise NetworkError(f"Unable to get account status: {error}")

        try:
            return AccountStatus(lock_transfer_block_id=int(data["lock_transfer_block_id"]), raw=data)
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed account status for {address}: {e}") from e

    async def get_block_height(self) -> int:
        data = await self._get_json(f"{self.utxo_url}/latestblock", params={"cors": "true"})
        try:
            return int(data["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed block height response: {e}") from e

    async def get_consensus_hash(self) -> str:
        data = await self._get_json(f"{self.api_url}/v1/blockchains/bitcoin/consensus")
        try:
            consensus_hash = str(data["consensus_hash"])
            bytes.fromhex(consensus_hash)
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed consensus hash response: {e}") from e
        return consensus_hash

    async def close(self) -> None:
        """Close the HTTP client if this reader created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None
