"""Base interface for chain and account state readers.

A snapshot joins four independent reads (UTXOs, token balance, account
status, block height) issued concurrently. Nothing ties them to the same
block: a new block or transaction can land between two of them. Callers that
need stronger guarantees must re-validate or use a combined endpoint.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from stxsend.errors import NetworkError
from stxsend.models import AccountStatus, ChainSnapshot, Utxo

logger = logging.getLogger(__name__)


class ChainStateReader(ABC):
    """Read-only access to the UTXO layer and the token ledger."""

    @abstractmethod
    async def get_utxos(self, address: str) -> list[Utxo]:
        """Spendable outputs of a base-chain address."""
        pass

    @abstractmethod
    async def get_account_balance(self, address: str, token_type: str) -> int:
        """Token balance of an account, in base units."""
        pass

    @abstractmethod
    async def get_account_status(self, address: str, token_type: str) -> AccountStatus:
        """Account status including the lock-transfer block height."""
        pass

    @abstractmethod
    async def get_block_height(self) -> int:
        """Current base-chain height."""
        pass

    @abstractmethod
    async def get_consensus_hash(self) -> str:
        """Current consensus hash (32 hex chars) for new token operations."""
        pass

    async def read_snapshot(self, address: str, token_type: str = "STACKS") -> ChainSnapshot:
        """Read all decision-time state for ``address``.

        Raises:
            NetworkError: If any of the four reads fails
        """
        try:
            utxos, balance, status, height = await asyncio.gather(
                self.get_utxos(address),
                self.get_account_balance(address, token_type),
                self.get_account_status(address, token_type),
                self.get_block_height(),
            )
        except NetworkError:
            raise
        except Exception as e:
            raise NetworkError(f"Failed to read chain state for {address}: {e}") from e

        snapshot = ChainSnapshot(
            utxos=tuple(utxos),
            account_balance=balance,
            account_status=status,
            block_height=height,
        )
        logger.debug(
            f"Snapshot for {address}: {len(snapshot.utxos)} UTXOs, "
            f"{snapshot.btc_balance} sats, {balance} {token_type}, height {height}"
        )
        return snapshot


class SimulatedChainReader(ChainStateReader):
    """In-memory chain state for testing and dry runs (no network queries)."""

    def __init__(
        self,
        utxos: Optional[list[Utxo]] = None,
        account_balance: int = 0,
        lock_transfer_block_id: int = 0,
        block_height: int = 600000,
        consensus_hash: str = "00" * 16,
    ):
        self.utxos = list(utxos or [])
        self.account_balance = account_balance
        self.lock_transfer_block_id = lock_transfer_block_id
        self.block_height = block_height
        self.consensus_hash = consensus_hash
        self.reads = 0

    async def get_utxos(self, address: str) -> list[Utxo]:
        self.reads += 1
        return list(self.utxos)

    async def get_account_balance(self, address: str, token_type: str) -> int:
        self.reads += 1
        return self.account_balance

    async def get_account_status(self, address: str, token_type: str) -> AccountStatus:
        self.reads += 1
        return AccountStatus(lock_transfer_block_id=self.lock_transfer_block_id)

    async def get_block_height(self) -> int:
        self.reads += 1
        return self.block_height

    async def get_consensus_hash(self) -> str:
        return self.consensus_hash
