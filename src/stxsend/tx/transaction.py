"""Bitcoin transaction helpers on top of bitcoinlib.

The pipeline builds legacy (non-segwit) transactions only. Devices receive
the unsigned serialization and sign the SIGHASH_ALL digest of one input.
"""

from bitcoinlib.encoding import EncodingError
from bitcoinlib.transactions import Transaction
from bitcoinlib.transactions import TransactionError as RawTransactionError

SIGHASH_ALL = 0x01


def parse_hex(raw_tx: str) -> Transaction:
    """Parse a hex-encoded raw transaction.

    Raises:
        ValueError: If ``raw_tx`` is not a parseable transaction
    """
    # truncated data surfaces from the stream readers as IndexError or TypeError
    try:
        return Transaction.parse_hex(raw_tx)
    except (RawTransactionError, EncodingError, IndexError, TypeError) as e:
        raise ValueError(f"Invalid raw transaction: {e}") from e


def raw_txid(raw_tx: str) -> str:
    """Big-endian hex id of a raw transaction, as explorers display it."""
    return parse_hex(raw_tx).txid


def signature_hash(unsigned_tx: bytes, index: int, script_code: bytes) -> bytes:
    """Legacy SIGHASH_ALL digest for input ``index`` of a serialized transaction.

    Args:
        unsigned_tx: Serialized transaction with empty scriptSigs
        index: Input being signed
        script_code: Output script of the UTXO that input spends

    Raises:
        IndexError: If the transaction has no input ``index``
        ValueError: If ``unsigned_tx`` is not a parseable transaction
    """
    tx = parse_hex(unsigned_tx.hex())
    if not 0 <= index < len(tx.inputs):
        raise IndexError(f"Input index {index} out of range")

    tx.inputs[index].unlocking_script_unsigned = script_code
    return tx.signature_hash(sign_id=index, hash_type=SIGHASH_ALL, witness_type="legacy")
