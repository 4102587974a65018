"""
FundUp Crypto Signing Module

Signs and recovers EIP-712 digests with secp256k1 keys.
"""

from typing import Union

from .keys import PrivateKey, PublicKey, Signature
from .typed_data import typed_data_digest


def sign_digest(private_key: PrivateKey, digest: bytes) -> bytes:
    """
    Sign a 32-byte digest and return the 65-byte wire signature.
    """
    return private_key.sign_msg_hash(digest).to_bytes()


def sign_typed_data(private_key: PrivateKey, domain_sep: bytes, struct_hash: bytes) -> bytes:
    """
    Sign typed data (EIP-712).

    Args:
        private_key: PrivateKey to sign with
        domain_sep: EIP-712 domain separator
        struct_hash: Hash of the struct to sign

    Returns:
        65-byte signature
    """
    return sign_digest(private_key, typed_data_digest(domain_sep, struct_hash))


def recover_signer(digest: bytes, signature: Union[bytes, Signature]) -> str:
    """
    Recover the address that signed *digest*.

    This mirrors the Solidity ecrecover() function, including the rejection
    of malleable high-s signatures.

    Raises:
        InvalidSignatureError: If the signature is malformed or unrecoverable
    """
    if not isinstance(signature, Signature):
        signature = Signature.from_bytes(bytes(signature))
    return PublicKey.recover_from_msg_hash(digest, signature).to_address()
