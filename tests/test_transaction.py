"""Tests for bitcoinlib transaction helpers and the token transfer builder."""

import hashlib

import pytest
from bitcoinlib.transactions import Transaction

from conftest import GENESIS_COINBASE_HASH, GENESIS_COINBASE_HEX, GENESIS_COINBASE_TXID
from stxsend.errors import TransactionError
from stxsend.models import Utxo
from stxsend.tx.builder import (
    DUMMY_CONSENSUS_HASH,
    P2PKH_INPUT_SIZE,
    estimate_tx_bytes,
    fund_transaction,
    make_payload,
    make_skeleton,
    sum_output_values,
)
from stxsend.tx.script import OP_RETURN, address_to_script, is_p2pkh, push_data
from stxsend.tx.transaction import parse_hex, raw_txid, signature_hash

SENDER = "1FzTxL9Mxnm2fdmnQEArfhzJHevwbvcH6d"
RECIPIENT = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"


def two_input_tx() -> Transaction:
    tx = Transaction()
    tx.add_input(b"\x11" * 32, 0)
    tx.add_input(b"\x22" * 32, 1)
    tx.add_output(1000, lock_script=address_to_script(RECIPIENT))
    return tx


class TestTransaction:
    """Tests for parsing, hashing and signature digests."""

    def test_parse_and_serialize_genesis_coinbase(self):
        tx = parse_hex(GENESIS_COINBASE_HEX)

        assert len(tx.inputs) == 1
        assert tx.outputs[0].value == 50 * 100_000_000
        assert tx.raw_hex() == GENESIS_COINBASE_HEX

    def test_txid_is_reversed_hash(self):
        txid = raw_txid(GENESIS_COINBASE_HEX)

        assert txid == GENESIS_COINBASE_TXID
        assert bytes.fromhex(txid)[::-1].hex() == GENESIS_COINBASE_HASH

    def test_not_hex_rejected(self):
        with pytest.raises(ValueError):
            parse_hex("not a transaction")

    def test_signature_hash_is_legacy_digest(self):
        script_code = address_to_script(SENDER)
        lock_script = address_to_script(RECIPIENT)
        stripped = (
            bytes.fromhex("01000000" "02")
            + b"\x11" * 32 + bytes.fromhex("00000000") + bytes([len(script_code)]) + script_code
            + bytes.fromhex("ffffffff")
            + b"\x22" * 32 + bytes.fromhex("01000000" "00" "ffffffff")
            + bytes.fromhex("01") + (1000).to_bytes(8, "little") + bytes([len(lock_script)]) + lock_script
            + bytes.fromhex("00000000" "01000000")
        )
        expected = hashlib.sha256(hashlib.sha256(stripped).digest()).digest()

        assert signature_hash(two_input_tx().raw(), 0, script_code) == expected

    def test_signature_hash_depends_on_index(self):
        unsigned = two_input_tx().raw()
        script_code = address_to_script(SENDER)

        assert signature_hash(unsigned, 0, script_code) != signature_hash(unsigned, 1, script_code)
        with pytest.raises(IndexError):
            signature_hash(unsigned, 2, script_code)


class TestPayload:
    """Tests for the token transfer payload."""

    def test_layout(self):
        payload = make_payload("ab" * 16, "STACKS", 1_000_000, "hello")

        assert payload[:2] == b"id"
        assert payload[2:3] == b"$"
        assert payload[3:19] == bytes.fromhex("ab" * 16)
        assert payload[19:38] == b"STACKS" + b"\x00" * 13
        assert int.from_bytes(payload[38:46], "big") == 1_000_000
        assert payload[46:] == b"hello"

    def test_max_memo_fits_80_bytes(self):
        assert len(make_payload(DUMMY_CONSENSUS_HASH, "STACKS", 1, "m" * 34)) == 80

    def test_memo_too_long(self):
        with pytest.raises(ValueError):
            make_payload(DUMMY_CONSENSUS_HASH, "STACKS", 1, "m" * 35)

    def test_bad_consensus_hash(self):
        with pytest.raises(ValueError):
            make_payload("ab", "STACKS", 1)


class TestBuilder:
    """Tests for skeleton construction, sizing and funding."""

    def test_skeleton_outputs(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5, dust_minimum=5500)

        assert tx.outputs[0].value == 0
        assert tx.outputs[0].lock_script[0] == OP_RETURN
        assert tx.outputs[1].value == 5500
        assert is_p2pkh(tx.outputs[1].lock_script)
        assert sum_output_values(tx) == 5500

    def test_size_grows_per_input(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5)
        assert estimate_tx_bytes(tx, 2, 1) - estimate_tx_bytes(tx, 1, 1) == P2PKH_INPUT_SIZE

    def test_size_model(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5)
        op_return = 9 + len(push_data(make_payload(DUMMY_CONSENSUS_HASH, "STACKS", 5))) + 1
        assert estimate_tx_bytes(tx, 1, 1) == 10 + 148 + op_return + 34 + 34

    def test_prefers_smallest_covering_utxo(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5)
        utxos = [
            Utxo(tx_hash="11" * 32, output_index=0, value=1_000_000),
            Utxo(tx_hash="22" * 32, output_index=0, value=100_000),
            Utxo(tx_hash="33" * 32, output_index=0, value=1_000),
        ]

        funded = fund_transaction(tx, SENDER, utxos, fee_rate=10)

        assert [u.value for u in funded.spent] == [100_000]
        assert funded.tx.inputs[0].prev_txid == bytes.fromhex("22" * 32)
        assert funded.network_fee == 10 * estimate_tx_bytes(funded.tx)

    def test_combines_largest_when_no_single_utxo_covers(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5)
        utxos = [
            Utxo(tx_hash="11" * 32, output_index=0, value=9_000),
            Utxo(tx_hash="22" * 32, output_index=1, value=8_000),
            Utxo(tx_hash="33" * 32, output_index=2, value=7_000),
        ]

        funded = fund_transaction(tx, SENDER, utxos, fee_rate=1)

        assert len(funded.spent) >= 2
        assert funded.spent[0].value == 9_000
        change = funded.tx.outputs[funded.change_index]
        assert change.value >= 5500
        assert change.lock_script == address_to_script(SENDER)
        assert funded.network_fee == estimate_tx_bytes(funded.tx)

    def test_not_enough_utxos(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5)
        utxos = [Utxo(tx_hash="11" * 32, output_index=0, value=1_000)]

        with pytest.raises(TransactionError, match="Not enough UTXOs"):
            fund_transaction(tx, SENDER, utxos, fee_rate=10)

    def test_skips_utxos_worth_less_than_their_fee(self):
        tx = make_skeleton(RECIPIENT, DUMMY_CONSENSUS_HASH, "STACKS", 5)
        utxos = [
            Utxo(tx_hash="11" * 32, output_index=0, value=10_000),
            Utxo(tx_hash="22" * 32, output_index=0, value=1_000),
        ]

        # 12,350 to fund at 10 sat/byte; spending 10,000 leaves 3,830 and the
        # 1,000 sat UTXO would cost 1,480 to spend
        with pytest.raises(TransactionError, match="Left to fund: 3830"):
            fund_transaction(tx, SENDER, utxos, fee_rate=10)

        assert len(tx.inputs) == 1
