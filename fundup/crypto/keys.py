"""
FundUp Crypto Keys Module

secp256k1 key management. Wraps eth-keys so that signatures produced here
recover to the same addresses an Ethereum wallet would produce.
"""

import secrets
from typing import Tuple, Union

from eth_keys.datatypes import (
    PrivateKey as EthPrivateKey,
    PublicKey as EthPublicKey,
    Signature as EthSignature,
)
from eth_keys.exceptions import BadSignature, ValidationError as EthValidationError
from eth_utils import decode_hex

from ..exceptions import ConfigurationError, InvalidSignatureError

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class PrivateKey:
    """
    secp256k1 private key for signing typed-data digests.
    """

    def __init__(self, key_bytes: bytes):
        """
        Args:
            key_bytes: 32 bytes of private key data

        Raises:
            ConfigurationError: If key bytes are invalid
        """
        if len(key_bytes) != 32:
            raise ConfigurationError(f"Private key must be 32 bytes, got {len(key_bytes)}")
        try:
            self._key = EthPrivateKey(key_bytes)
        except EthValidationError as e:
            raise ConfigurationError(f"Invalid private key: {e}")

    @classmethod
    def from_hex(cls, hex_str: str) -> "PrivateKey":
        return cls(decode_hex(hex_str))

    @classmethod
    def from_int(cls, key_int: int) -> "PrivateKey":
        return cls(key_int.to_bytes(32, byteorder='big'))

    @classmethod
    def generate(cls) -> "PrivateKey":
        """Generate a new random private key."""
        return cls(secrets.token_bytes(32))

    @property
    def public_key(self) -> "PublicKey":
        return PublicKey(self._key.public_key)

    @property
    def address(self) -> str:
        """Checksum address controlled by this key."""
        return self.public_key.to_address()

    def to_bytes(self) -> bytes:
        return self._key.to_bytes()

    def sign_msg_hash(self, msg_hash: bytes) -> "Signature":
        """
        Sign a 32-byte message hash.

        Args:
            msg_hash: 32-byte hash to sign

        Returns:
            Signature instance (low-s, as produced by RFC 6979 signing)
        """
        if len(msg_hash) != 32:
            raise ValueError(f"Message hash must be 32 bytes, got {len(msg_hash)}")
        return Signature(self._key.sign_msg_hash(msg_hash))

    def __repr__(self) -> str:
        return f"PrivateKey({self.address})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PrivateKey):
            return False
        return self._key == other._key


class PublicKey:
    """
    secp256k1 public key.
    """

    def __init__(self, key: Union[EthPublicKey, bytes]):
        if isinstance(key, EthPublicKey):
            self._key = key
        elif isinstance(key, bytes) and len(key) == 64:
            self._key = EthPublicKey(key)
        elif isinstance(key, bytes) and len(key) == 65 and key[0] == 0x04:
            self._key = EthPublicKey(key[1:])
        else:
            raise ConfigurationError(f"Invalid public key: {key!r}")

    @classmethod
    def recover_from_msg_hash(cls, msg_hash: bytes, signature: "Signature") -> "PublicKey":
        """
        Recover the public key that produced *signature* over *msg_hash*.

        Raises:
            InvalidSignatureError: If no key can be recovered
        """
        try:
            recovered = signature._signature.recover_public_key_from_msg_hash(msg_hash)
        except (BadSignature, EthValidationError) as e:
            raise InvalidSignatureError(f"Signature recovery failed: {e}")
        return cls(recovered)

    def to_bytes(self) -> bytes:
        return self._key.to_bytes()

    def to_address(self) -> str:
        """Derive the checksum address of this key."""
        from .address import public_key_to_address
        return public_key_to_address(self)

    def __repr__(self) -> str:
        return f"PublicKey({self.to_address()})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key.to_bytes())


class Signature:
    """
    ECDSA signature in (v, r, s) form.

    The wire format is 65 bytes ``r || s || v`` with ``v`` in {27, 28}, the
    layout Ethereum wallets emit for typed-data signatures.
    """

    def __init__(self, signature: EthSignature):
        self._signature = signature

    @classmethod
    def from_vrs(cls, v: int, r: int, s: int) -> "Signature":
        """
        Build from components. Accepts v as 0/1 or 27/28.

        Raises:
            InvalidSignatureError: On malformed or high-s components
        """
        if v >= 27:
            v -= 27
        if v not in (0, 1):
            raise InvalidSignatureError(f"Invalid recovery id v={v}")
        if not 0 < r < SECP256K1_N or not 0 < s <= SECP256K1_N // 2:
            # high-s values would make signatures malleable
            raise InvalidSignatureError("Signature r/s out of range")
        try:
            return cls(EthSignature(vrs=(v, r, s)))
        except EthValidationError as e:
            raise InvalidSignatureError(f"Invalid signature: {e}")

    @classmethod
    def from_bytes(cls, sig_bytes: bytes) -> "Signature":
        """
        Parse a 65-byte signature (r[32] + s[32] + v[1]).
        """
        if len(sig_bytes) != 65:
            raise InvalidSignatureError(f"Signature must be 65 bytes, got {len(sig_bytes)}")
        r = int.from_bytes(sig_bytes[0:32], byteorder='big')
        s = int.from_bytes(sig_bytes[32:64], byteorder='big')
        return cls.from_vrs(sig_bytes[64], r, s)

    @property
    def v(self) -> int:
        """Recovery parameter (0 or 1)."""
        return self._signature.v

    @property
    def r(self) -> int:
        return self._signature.r

    @property
    def s(self) -> int:
        return self._signature.s

    @property
    def vrs(self) -> Tuple[int, int, int]:
        return (self.v, self.r, self.s)

    def to_bytes(self) -> bytes:
        """65-byte wire format with v in {27, 28}."""
        return (
            self.r.to_bytes(32, byteorder='big')
            + self.s.to_bytes(32, byteorder='big')
            + bytes([self.v + 27])
        )

    def to_hex(self) -> str:
        return '0x' + self.to_bytes().hex()

    def __repr__(self) -> str:
        return f"Signature(v={self.v}, r={hex(self.r)[:10]}..., s={hex(self.s)[:10]}...)"
