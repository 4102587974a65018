"""
Signature verification with replay protection.

Verification order:
    1. ecrecover the digest; accept if it yields the expected signer.
    2. If the expected signer is a registered programmatic identity, ask it
       via ``is_valid_signature``; only the EIP-1271 magic value counts.
    3. Otherwise reject.

Nonces are consumed *before* verification, so a failed attempt at a given
nonce can never be retried at that nonce.
"""

from typing import Dict

from ..constants import EIP1271_MAGIC_VALUE
from ..crypto.address import to_checksum_address
from ..crypto.signing import recover_signer
from ..exceptions import ExpiredSignatureError, InvalidSignatureError
from ..logger import get_logger

logger = get_logger(__name__)


class SignatureVerifier:
    """
    Authorization layer for signed instructions.

    Args:
        chain: Host environment (clock and programmatic account registry)
    """

    def __init__(self, chain):
        self._chain = chain
        self._nonces: Dict[str, int] = {}

    # ── Nonces ────────────────────────────────────────────────────────

    def nonce_of(self, principal: str) -> int:
        return self._nonces.get(to_checksum_address(principal), 0)

    def consume_nonce(self, principal: str) -> int:
        """Return the current nonce for *principal* and advance it."""
        principal = to_checksum_address(principal)
        nonce = self._nonces.get(principal, 0)
        self._nonces[principal] = nonce + 1
        return nonce

    # ── Deadlines ─────────────────────────────────────────────────────

    def check_deadline(self, deadline: int):
        now = self._chain.timestamp
        if now > deadline:
            raise ExpiredSignatureError(f"Signature expired at {deadline} (now={now})")

    # ── Verification ──────────────────────────────────────────────────

    def is_valid(self, expected_signer: str, digest: bytes, signature: bytes) -> bool:
        expected_signer = to_checksum_address(expected_signer)

        try:
            if recover_signer(digest, signature) == expected_signer:
                return True
        except InvalidSignatureError:
            # programmatic identities may use signature formats ecrecover rejects
            pass

        account = self._chain.get_account(expected_signer)
        if account is None:
            return False

        try:
            result = account.is_valid_signature(digest, signature)
        except Exception as e:
            logger.warning(f"is_valid_signature raised for {expected_signer}: {e}")
            return False
        return result == EIP1271_MAGIC_VALUE

    def verify(self, expected_signer: str, digest: bytes, signature: bytes):
        """
        Raises:
            InvalidSignatureError: If *signature* is not from *expected_signer*
        """
        if not self.is_valid(expected_signer, digest, signature):
            logger.warning(f"Rejected signature for {expected_signer} (digest=0x{digest.hex()[:16]}...)")
            raise InvalidSignatureError(f"Invalid signature for {expected_signer}")

    def to_dict(self) -> Dict[str, int]:
        return dict(self._nonces)
