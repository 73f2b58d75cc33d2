"""Token transfer transaction builder.

Token transfer payload, carried in an OP_RETURN output:

    0     2  3                19                  38           46            80
    |-----|--|----------------|-------------------|------------|-------------|
    magic op  consensus hash   token type (ascii)  amount (BE)  memo (ascii)

Output 0 is the payload, output 1 the recipient's dust output, output 2 the
sender's change. Inputs are the sender's P2PKH UTXOs.
"""

import logging
from dataclasses import dataclass

from bitcoinlib.transactions import Transaction

from stxsend.errors import TransactionError
from stxsend.models import MAX_MEMO_BYTES, Utxo
from stxsend.tx.script import address_to_script, op_return_script

logger = logging.getLogger(__name__)

TOKEN_TRANSFER_OP = b"$"
CONSENSUS_HASH_BYTES = 16
TOKEN_TYPE_BYTES = 19
DUMMY_CONSENSUS_HASH = "00" * CONSENSUS_HASH_BYTES

# Serialized size model, bytes
TX_EMPTY_SIZE = 4 + 1 + 1 + 4       # version, input count, output count, locktime
TX_INPUT_BASE = 32 + 4 + 1 + 4      # outpoint, script length, sequence
TX_INPUT_PUBKEYHASH = 107           # <sig+hashtype> <compressed pubkey>
TX_OUTPUT_BASE = 8 + 1              # value, script length
TX_OUTPUT_PUBKEYHASH = 25
P2PKH_INPUT_SIZE = TX_INPUT_BASE + TX_INPUT_PUBKEYHASH


def make_payload(
    consensus_hash: str,
    token_type: str,
    token_amount: int,
    memo: str = "",
    magic_bytes: str = "id",
) -> bytes:
    """Build the OP_RETURN payload of a token transfer."""
    consensus = bytes.fromhex(consensus_hash)
    if len(consensus) != CONSENSUS_HASH_BYTES:
        raise ValueError("Consensus hash must be 16 bytes")
    token = token_type.encode("ascii")
    if len(token) > TOKEN_TYPE_BYTES:
        raise ValueError("Token type too long")
    scratch = memo.encode("ascii")
    if len(scratch) > MAX_MEMO_BYTES:
        raise ValueError("Memo too long")

    return (
        magic_bytes.encode("ascii")
        + TOKEN_TRANSFER_OP
        + consensus
        + token.ljust(TOKEN_TYPE_BYTES, b"\x00")
        + token_amount.to_bytes(8, "big")
        + scratch
    )


def make_skeleton(
    recipient_btc_address: str,
    consensus_hash: str,
    token_type: str,
    token_amount: int,
    memo: str = "",
    magic_bytes: str = "id",
    dust_minimum: int = 5500,
) -> Transaction:
    """Unfunded token transfer: payload output plus recipient dust output."""
    payload = make_payload(consensus_hash, token_type, token_amount, memo, magic_bytes)
    tx = Transaction()
    tx.add_output(0, lock_script=op_return_script(payload))
    tx.add_output(dust_minimum, lock_script=address_to_script(recipient_btc_address))
    return tx


def estimate_tx_bytes(tx: Transaction, additional_inputs: int = 0, additional_outputs: int = 0) -> int:
    """Estimated signed size, counting every input as a P2PKH spend."""
    input_count = len(tx.inputs) + additional_inputs
    outputs = sum(TX_OUTPUT_BASE + len(out.lock_script) for out in tx.outputs)
    outputs += additional_outputs * (TX_OUTPUT_BASE + TX_OUTPUT_PUBKEYHASH)
    return TX_EMPTY_SIZE + input_count * P2PKH_INPUT_SIZE + outputs


def sum_output_values(tx: Transaction) -> int:
    return sum(out.value for out in tx.outputs)


@dataclass
class FundedTransaction:
    """Unsigned transaction with the UTXOs spent by each input."""
    tx: Transaction
    spent: list[Utxo]
    change_index: int

    @property
    def network_fee(self) -> int:
        return sum(u.value for u in self.spent) - sum_output_values(self.tx)


def _spend(tx: Transaction, utxo: Utxo, spent: list[Utxo]) -> None:
    tx.add_input(bytes.fromhex(utxo.tx_hash), utxo.output_index, value=utxo.value)
    spent.append(utxo)


def _add_utxos_to_fund(tx: Transaction, utxos: list[Utxo], amount: int, fee_rate: int, spent: list[Utxo]) -> int:
    """Add inputs until ``amount`` plus their own fees is covered. Returns the change."""
    input_fee = fee_rate * P2PKH_INPUT_SIZE

    while True:
        if not utxos:
            raise TransactionError(f"Not enough UTXOs to fund. Left to fund: {amount}")

        threshold = amount + input_fee
        good = sorted((u for u in utxos if u.value >= threshold), key=lambda u: u.value)
        if good:
            _spend(tx, good[0], spent)
            return good[0].value - threshold

        largest = max(utxos, key=lambda u: u.value)
        # every remaining UTXO costs at least as much to spend as it is worth
        if input_fee >= largest.value:
            raise TransactionError(f"Not enough UTXOs to fund. Left to fund: {amount}")

        utxos = [u for u in utxos if u is not largest]
        _spend(tx, largest, spent)
        amount = threshold - largest.value


def fund_transaction(
    tx: Transaction,
    change_address: str,
    utxos: list[Utxo] | tuple[Utxo, ...],
    fee_rate: int,
    dust_minimum: int = 5500,
) -> FundedTransaction:
    """Add sender inputs and a change output so ``tx`` pays its own fee.

    Prefers the smallest single UTXO that covers the whole amount, otherwise
    spends the largest and keeps going. UTXOs worth no more than their own
    input fee are never spent.

    Raises:
        TransactionError: If the UTXOs cannot cover outputs plus fee
    """
    change_index = tx.add_output(dust_minimum, lock_script=address_to_script(change_address))

    to_fund = fee_rate * estimate_tx_bytes(tx) + sum_output_values(tx)
    spent: list[Utxo] = []
    change = _add_utxos_to_fund(tx, list(utxos), to_fund, fee_rate, spent)
    tx.outputs[change_index].value += change

    logger.debug(
        f"Funded transfer with {len(spent)} input(s), change {tx.outputs[change_index].value} sats"
    )
    return FundedTransaction(tx=tx, spent=spent, change_index=change_index)
