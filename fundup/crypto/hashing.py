"""
FundUp Crypto Hashing Module

Keccak-256 is the only hash the mechanism relies on: typed-data struct
hashes, domain separators, address derivation and checksums all use it.
"""

from typing import Union

from eth_utils import keccak


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes, or a hex string with or without 0x prefix

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            data = bytes.fromhex(data[2:])
        else:
            data = bytes.fromhex(data)
    return keccak(primitive=data)


def keccak256_text(text: str) -> bytes:
    """Keccak-256 of the UTF-8 encoding of *text* (type strings, names)."""
    return keccak(text=text)
