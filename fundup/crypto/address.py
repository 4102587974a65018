"""
FundUp Crypto Address Module

Ethereum-style 20-byte addresses with EIP-55 checksums. Every principal the
mechanism sees (voters, proposers, recipients, the mechanism itself) is
normalized through `to_checksum_address` so that dictionary keys compare
equal regardless of the casing a caller used.
"""

from eth_utils import (
    is_address,
    to_canonical_address,
    to_checksum_address as _eth_to_checksum_address,
)

from ..constants import ZERO_ADDRESS
from .hashing import keccak256

ADDRESS_LENGTH = 20

def to_checksum_address(address: str) -> str:
    """
    Convert an address to EIP-55 checksum format.

    Raises:
        ValueError: If the address is malformed
    """
    if not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return _eth_to_checksum_address(address)

def is_valid_address(address: str) -> bool:
    """Check if *address* is a well-formed 20-byte hex address."""
    return isinstance(address, str) and is_address(address)

def is_zero_address(address: str) -> bool:
    return to_canonical_address(address) == bytes(ADDRESS_LENGTH)

def public_key_to_address(public_key) -> str:
    """
    Derive address from a secp256k1 public key.

    Address = last 20 bytes of keccak256(uncompressed pubkey without 0x04).

    Args:
        public_key: PublicKey instance or 64-byte raw key

    Returns:
        Checksum address with 0x prefix
    """
    pub_bytes = public_key.to_bytes() if hasattr(public_key, 'to_bytes') else public_key
    if len(pub_bytes) == 65 and pub_bytes[0] == 0x04:
        pub_bytes = pub_bytes[1:]
    if len(pub_bytes) != 64:
        raise ValueError(f"secp256k1 public key must be 64 bytes, got {len(pub_bytes)}")
    return _eth_to_checksum_address(keccak256(pub_bytes)[-20:])

__all__ = [
    "ADDRESS_LENGTH",
    "ZERO_ADDRESS",
    "is_valid_address",
    "is_zero_address",
    "public_key_to_address",
    "to_checksum_address",
]
