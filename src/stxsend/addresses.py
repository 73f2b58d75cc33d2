"""Address translation between Stacks (c32check) and Bitcoin (base58check).

A Stacks address is ``S`` + version character + c32(hash160 + checksum). The
same hash160 with a mapped version byte is the base-chain address that owns
the UTXOs funding a token transfer.

c32 alphabet: Crockford base32 without I, L, O, U. Decoding is lenient the
same way Crockford is: lowercase is accepted, O reads as 0, I and L as 1.
"""

import hashlib

import base58
from bip_utils import P2PKHAddrEncoder

from stxsend.errors import InvalidAddressError

C32_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

# c32 address versions
MAINNET_P2PKH = 22  # SP...
MAINNET_P2SH = 20   # SM...
TESTNET_P2PKH = 26  # ST...
TESTNET_P2SH = 21   # SN...

# base58check version bytes
B58_P2PKH = 0x00
B58_P2SH = 0x05
B58_TESTNET_P2PKH = 0x6F
B58_TESTNET_P2SH = 0xC4

C32_TO_B58_VERSIONS = {
    MAINNET_P2PKH: B58_P2PKH,
    MAINNET_P2SH: B58_P2SH,
    TESTNET_P2PKH: B58_TESTNET_P2PKH,
    TESTNET_P2SH: B58_TESTNET_P2SH,
}
B58_TO_C32_VERSIONS = {v: k for k, v in C32_TO_B58_VERSIONS.items()}


def _checksum(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[:4]


def c32_normalize(text: str) -> str:
    return text.upper().replace("O", "0").replace("L", "1").replace("I", "1")


def c32_encode(data: bytes) -> str:
    """Encode bytes as c32. Each leading zero byte becomes one leading '0'."""
    value = int.from_bytes(data, "big")
    chars = []
    while value:
        value, remainder = divmod(value, 32)
        chars.append(C32_ALPHABET[remainder])

    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return "0" * leading_zeros + "".join(reversed(chars))


def c32_decode(text: str) -> bytes:
    """Decode a c32 string. Each leading '0' becomes one leading zero byte."""
    text = c32_normalize(text)
    if any(ch not in C32_ALPHABET for ch in text):
        raise InvalidAddressError("Not a c32-encoded string")

    stripped = text.lstrip("0")
    leading_zeros = len(text) - len(stripped)

    value = 0
    for ch in stripped:
        value = value * 32 + C32_ALPHABET.index(ch)

    body = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return b"\x00" * leading_zeros + body


def c32check_encode(version: int, data: bytes) -> str:
    if not 0 <= version < 32:
        raise InvalidAddressError(f"Invalid c32 version: {version}")
    checksum = _checksum(bytes([version]) + data)
    return C32_ALPHABET[version] + c32_encode(data + checksum)


def c32check_decode(text: str) -> tuple[int, bytes]:
    text = c32_normalize(text)
    if len(text) < 2:
        raise InvalidAddressError("Invalid c32check string: too short")

    version = C32_ALPHABET.index(text[0]) if text[0] in C32_ALPHABET else -1
    if version < 0:
        raise InvalidAddressError(f"Invalid c32check version character: {text[0]!r}")

    decoded = c32_decode(text[1:])
    if len(decoded) < 4:
        raise InvalidAddressError("Invalid c32check string: missing checksum")

    data, checksum = decoded[:-4], decoded[-4:]
    if _checksum(bytes([version]) + data) != checksum:
        raise InvalidAddressError("Invalid c32check string: checksum mismatch")

    return version, data


def c32_address(version: int, hash160: bytes) -> str:
    """Build a Stacks address from a version and a 20-byte hash."""
    if len(hash160) != 20:
        raise InvalidAddressError("Invalid c32 address: hash must be 20 bytes")
    return "S" + c32check_encode(version, hash160)


def c32_address_decode(address: str) -> tuple[int, bytes]:
    """Split a Stacks address into (version, hash160)."""
    if not isinstance(address, str) or len(address) <= 5:
        raise InvalidAddressError("Invalid c32 address: invalid length")
    if address[0] != "S":
        raise InvalidAddressError('Invalid c32 address: must start with "S"')

    version, hash160 = c32check_decode(address[1:])
    if len(hash160) != 20:
        raise InvalidAddressError("Invalid c32 address: hash must be 20 bytes")
    return version, hash160


def b58_address_decode(address: str) -> tuple[int, bytes]:
    """Split a base58check address into (version byte, hash160)."""
    try:
        payload = base58.b58decode_check(address)
    except ValueError as e:
        raise InvalidAddressError(f"Invalid base58check address: {e}") from e

    if len(payload) != 21:
        raise InvalidAddressError("Invalid base58check address: bad payload length")
    return payload[0], payload[1:]


def b58_address(version: int, hash160: bytes) -> str:
    return base58.b58encode_check(bytes([version]) + hash160).decode()


def c32_to_b58(address: str) -> str:
    """Convert a Stacks address to the Bitcoin address with the same hash."""
    version, hash160 = c32_address_decode(address)
    return b58_address(C32_TO_B58_VERSIONS.get(version, version), hash160)


def b58_to_c32(address: str) -> str:
    """Convert a Bitcoin address to the Stacks address with the same hash."""
    version, hash160 = b58_address_decode(address)
    return c32_address(B58_TO_C32_VERSIONS.get(version, version), hash160)


def p2pkh_address(public_key: bytes, testnet: bool = False) -> str:
    """Derive the P2PKH address of a compressed secp256k1 public key."""
    net_ver = bytes([B58_TESTNET_P2PKH if testnet else B58_P2PKH])
    return P2PKHAddrEncoder.EncodeKey(public_key, net_ver=net_ver)
