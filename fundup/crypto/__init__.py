"""
FundUp Crypto Module

Cryptographic primitives for the signature authorization layer:
- secp256k1 keys and signatures (eth-keys)
- Keccak-256 hashing
- EIP-55 addresses and CREATE-style contract addresses
- EIP-712 typed-data digests for Signup and CastVote
"""

from .keys import PrivateKey, PublicKey, Signature
from .signing import recover_signer, sign_digest, sign_typed_data
from .hashing import keccak256, keccak256_text
from .address import (
    is_valid_address,
    is_zero_address,
    public_key_to_address,
    to_checksum_address,
)
from .contract import generate_contract_address
from .typed_data import (
    cast_vote_struct_hash,
    domain_separator,
    signup_struct_hash,
    typed_data_digest,
)

__all__ = [
    # Keys
    "PrivateKey",
    "PublicKey",
    "Signature",
    # Signing
    "recover_signer",
    "sign_digest",
    "sign_typed_data",
    # Hashing
    "keccak256",
    "keccak256_text",
    # Addresses
    "generate_contract_address",
    "is_valid_address",
    "is_zero_address",
    "public_key_to_address",
    "to_checksum_address",
    # Typed data
    "cast_vote_struct_hash",
    "domain_separator",
    "signup_struct_hash",
    "typed_data_digest",
]
