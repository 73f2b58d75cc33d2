"""Shared types for the token transfer pipeline.

Transfer flow:
1. Caller builds a TransferRequest (Stacks addresses, micro-STX amount, memo)
2. Validator reads a ChainSnapshot and admits the request as a PreparedTransfer
3. Assembler builds and signs the Bitcoin transaction -> SignedTransaction
4. Broadcaster submits it and derives the txid -> TransferResult
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from stxsend.errors import TransferError

# Payload is 80 bytes max; 46 are taken by magic, op, consensus hash, token type and amount
MAX_MEMO_BYTES = 34
MAX_TOKEN_AMOUNT = 2**64 - 1
MICRO_STX_DECIMALS = 6


class WalletType(str, Enum):
    """Hardware signer family holding the sender key."""
    LEDGER = "ledger"   # HID transport, address derived from the device key
    TREZOR = "trezor"   # address resolved on the host, cross-checked on the device


def parse_amount(amount: str | int | Decimal) -> int:
    """Convert a human STX amount ("12.5") into integer micro-STX.

    Raises:
        ValueError: If the amount is not a number, not positive, or has
            more than 6 decimal places.
    """
    if isinstance(amount, float):
        raise ValueError("Amount must not be a float")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Amount must be a number, got {amount!r}")

    if not value.is_finite() or value <= 0:
        raise ValueError("Amount must be a positive number")

    micro = value.scaleb(MICRO_STX_DECIMALS)
    if micro != micro.to_integral_value():
        raise ValueError(f"Amount supports at most {MICRO_STX_DECIMALS} decimal places")
    return int(micro)


@dataclass(frozen=True)
class TransferRequest:
    """Immutable input of one send action."""
    sender_address: str
    recipient_address: str
    amount: int  # micro-STX
    wallet_type: WalletType
    memo: str = ""

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError("Amount must be an integer number of micro-STX")
        if not 0 < self.amount <= MAX_TOKEN_AMOUNT:
            raise ValueError("Amount out of range")
        if not isinstance(self.wallet_type, WalletType):
            object.__setattr__(self, "wallet_type", WalletType(self.wallet_type))
        if not self.memo.isascii():
            raise ValueError("Memo must be ASCII")
        if len(self.memo) > MAX_MEMO_BYTES:
            raise ValueError(f"Memo must be at most {MAX_MEMO_BYTES} characters")


@dataclass(frozen=True)
class Utxo:
    """Spendable output. ``tx_hash`` is the big-endian (display) txid."""
    tx_hash: str
    output_index: int
    value: int  # satoshis
    confirmations: int = 0


@dataclass(frozen=True)
class AccountStatus:
    lock_transfer_block_id: int
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ChainSnapshot:
    """Chain and account state observed at decision time.

    Assembled from independent reads; they are not guaranteed to be
    mutually atomic.
    """
    utxos: tuple[Utxo, ...]
    account_balance: int
    account_status: AccountStatus
    block_height: int

    @property
    def btc_balance(self) -> int:
        return sum(utxo.value for utxo in self.utxos)

    def spendable_utxos(self, min_confirmations: int = 0) -> tuple[Utxo, ...]:
        return tuple(u for u in self.utxos if u.confirmations >= min_confirmations)

    def confirmed_balance(self, min_confirmations: int) -> int:
        return sum(u.value for u in self.spendable_utxos(min_confirmations))


@dataclass(frozen=True)
class PreparedTransfer:
    """A transfer that passed every admission gate."""
    sender_btc_address: str
    recipient_btc_address: str
    token_type: str
    token_amount: int
    memo: str
    wallet_type: WalletType
    snapshot: ChainSnapshot
    estimated_fee: int  # satoshis, surcharge included
    fee_rate: int       # sat/byte used for the estimate
    min_confirmations: int = 0

    @property
    def spendable_utxos(self) -> tuple[Utxo, ...]:
        return self.snapshot.spendable_utxos(self.min_confirmations)


@dataclass(frozen=True)
class SignedTransaction:
    raw_tx: str        # hex
    fee_charged: int   # echoes PreparedTransfer.estimated_fee
    network_fee: int   # inputs minus outputs of the signed transaction


@dataclass
class TransferResult:
    """Outcome of one pipeline run."""
    success: bool
    txid: Optional[str] = None
    fee: Optional[int] = None
    raw_tx: Optional[str] = None  # kept when signed but not broadcast
    error: Optional[TransferError] = None

    @property
    def message(self) -> str:
        if self.error:
            return self.error.message
        return f"Transaction {self.txid} submitted"

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            data = self.error.to_dict()
            if self.raw_tx:
                data["raw_tx"] = self.raw_tx
            return data
        return {"error": False, "txid": self.txid, "fee": self.fee}
