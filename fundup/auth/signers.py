"""
Signer capabilities.

Two kinds of principals can authorize an action:

  - KeyPairSigner: an externally owned key; its signatures are checked by
    public-key recovery.
  - ProgrammaticAccount: an identity that validates signatures with its own
    logic (EIP-1271). It answers ``is_valid_signature`` with the magic value
    ``0x1626ba7e`` when it accepts.
"""

from typing import Iterable, List, Optional, Protocol, Set, runtime_checkable

from ..constants import EIP1271_MAGIC_VALUE
from ..crypto.address import to_checksum_address
from ..crypto.keys import PrivateKey
from ..crypto.signing import recover_signer, sign_digest
from ..exceptions import InvalidSignatureError


@runtime_checkable
class ProgrammaticAccount(Protocol):
    """Identity exposing its own signature validation entrypoint."""

    address: str

    def is_valid_signature(self, digest: bytes, signature: bytes) -> bytes: ...


class KeyPairSigner:
    """A principal backed by a secp256k1 private key."""

    def __init__(self, private_key: Optional[PrivateKey] = None):
        self._key = private_key or PrivateKey.generate()
        self.address = self._key.address

    @classmethod
    def from_hex(cls, hex_key: str) -> "KeyPairSigner":
        return cls(PrivateKey.from_hex(hex_key))

    def sign(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest; returns the 65-byte signature."""
        return sign_digest(self._key, digest)

    def __repr__(self) -> str:
        return f"<KeyPairSigner {self.address}>"


class SmartAccount:
    """
    Programmatic identity controlled by one or more owner keys.

    A signature is valid when it recovers to one of the owners. Any other
    outcome returns a non-magic value; callers must treat that as failure.
    """

    INVALID = b"\xff\xff\xff\xff"

    def __init__(self, address: str, owners: Iterable[str]):
        self.address = to_checksum_address(address)
        self._owners: Set[str] = {to_checksum_address(o) for o in owners}
        if not self._owners:
            raise ValueError("SmartAccount needs at least one owner")

    @property
    def owners(self) -> List[str]:
        return sorted(self._owners)

    def add_owner(self, owner: str):
        self._owners.add(to_checksum_address(owner))

    def remove_owner(self, owner: str):
        self._owners.discard(to_checksum_address(owner))

    def is_valid_signature(self, digest: bytes, signature: bytes) -> bytes:
        try:
            signer = recover_signer(digest, signature)
        except InvalidSignatureError:
            return self.INVALID
        return EIP1271_MAGIC_VALUE if signer in self._owners else self.INVALID

    def __repr__(self) -> str:
        return f"<SmartAccount {self.address} owners={len(self._owners)}>"
