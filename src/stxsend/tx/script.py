"""Bitcoin script templates used by token transfers."""

from stxsend.addresses import (
    B58_P2PKH,
    B58_P2SH,
    B58_TESTNET_P2PKH,
    B58_TESTNET_P2SH,
    b58_address_decode,
)
from stxsend.errors import InvalidAddressError

OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_RETURN = 0x6A
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC


def push_data(data: bytes) -> bytes:
    """Minimal push of ``data`` onto the script stack."""
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    raise ValueError("Push data too large")


def p2pkh_script(hash160: bytes) -> bytes:
    return bytes([OP_DUP, OP_HASH160]) + push_data(hash160) + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def p2sh_script(hash160: bytes) -> bytes:
    return bytes([OP_HASH160]) + push_data(hash160) + bytes([OP_EQUAL])


def op_return_script(data: bytes) -> bytes:
    return bytes([OP_RETURN]) + push_data(data)


def is_p2pkh(script: bytes) -> bool:
    return (
        len(script) == 25
        and script[:3] == bytes([OP_DUP, OP_HASH160, 20])
        and script[23:] == bytes([OP_EQUALVERIFY, OP_CHECKSIG])
    )


def address_to_script(address: str) -> bytes:
    """Output script paying to a base58check address."""
    version, hash160 = b58_address_decode(address)
    if version in (B58_P2PKH, B58_TESTNET_P2PKH):
        return p2pkh_script(hash160)
    if version in (B58_P2SH, B58_TESTNET_P2SH):
        return p2sh_script(hash160)
    raise InvalidAddressError(f"Unsupported address version: {version}")


def p2pkh_script_sig(signature: bytes, public_key: bytes) -> bytes:
    """Unlocking script: <signature+hashtype> <pubkey>."""
    return push_data(signature) + push_data(public_key)
