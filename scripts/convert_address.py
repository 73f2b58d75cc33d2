#!/usr/bin/env python3
"""Convert addresses between Stacks (c32check) and Bitcoin (base58check).

Usage:
    python scripts/convert_address.py SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7
    python scripts/convert_address.py 1FzTxL9Mxnm2fdmnQEArfhzJHevwbvcH6d
    python scripts/convert_address.py --device  # simulated device address at DERIVATION_PATH
"""

import sys

from stxsend.addresses import b58_to_c32, c32_to_b58, p2pkh_address
from stxsend.config import Settings, get_settings
from stxsend.errors import InvalidAddressError


def convert(address: str) -> tuple[str, str]:
    """Return (stacks_address, bitcoin_address) for either encoding."""
    if address.startswith("S"):
        return address, c32_to_b58(address)
    return b58_to_c32(address), address


def simulated_device_address(settings: Settings, path: str) -> str:
    """Bitcoin address of the configured simulated device key at ``path``."""
    import asyncio

    from stxsend.signing.base import parse_derivation_path
    from stxsend.signing.simulated import DEFAULT_SEED, SimulatedDevice

    device = SimulatedDevice(seed=settings.simulated_device_seed or DEFAULT_SEED)
    public_key = asyncio.run(device.get_public_key(parse_derivation_path(path)))
    return p2pkh_address(public_key, testnet=settings.testnet)


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    if sys.argv[1] == "--device":
        settings = get_settings()
        path = sys.argv[2] if len(sys.argv) > 2 else settings.derivation_path
        address = simulated_device_address(settings, path)
    else:
        address = sys.argv[1].strip()

    try:
        stacks_address, bitcoin_address = convert(address)
    except InvalidAddressError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("=" * 60)
    print(f"Stacks:  {stacks_address}")
    print(f"Bitcoin: {bitcoin_address}")
    print("=" * 60)


if __name__ == "__main__":
    main()
